import numpy as np


class RingBuffer:
    """
    Fixed-capacity circular store backed by a numpy array.

    Each slot holds either a scalar or an array shaped like ``default``.
    ``position`` is the next slot to write; ``num_written`` counts every
    append and never wraps, so callers can tell how much history is valid.

    Structure:
        buffer: ndarray of shape (capacity, *shape(default))
        position: next write index, mod capacity
        num_written: total appends since construction
    """

    def __init__(self, capacity, default=0, dtype=None):
        """
        Args:
            capacity: Number of slots
            default: Initial value of every slot (scalar or array)
            dtype: Storage dtype (inferred from default when None)
        """
        default = np.asarray(default, dtype=dtype)
        self.buffer = np.empty((capacity,) + default.shape, dtype=default.dtype)
        self.buffer[...] = default
        self.capacity = capacity
        self.position = 0
        self.num_written = 0

    def __len__(self):
        return self.capacity

    def __getitem__(self, index):
        """Slot at a physical index; any integer is reduced mod capacity."""
        return self.buffer[index % self.capacity]

    def __setitem__(self, index, value):
        self.buffer[index % self.capacity] = value

    def append(self, value):
        """Overwrite the oldest slot and advance the write position."""
        self.buffer[self.position] = value
        self.position = (self.position + 1) % self.capacity
        self.num_written += 1

    def extend(self, values):
        """Append every value in order (vectorised for 1-D sample buffers)."""
        values = np.asarray(values, dtype=self.buffer.dtype)
        count = len(values)
        if count == 0:
            return
        if count >= self.capacity:
            # Only the newest `capacity` values survive
            tail = values[-self.capacity:]
            start = (self.position + count - self.capacity) % self.capacity
            indices = (start + np.arange(self.capacity)) % self.capacity
            self.buffer[indices] = tail
        else:
            indices = (self.position + np.arange(count)) % self.capacity
            self.buffer[indices] = values
        self.position = (self.position + count) % self.capacity
        self.num_written += count

    def index(self, offset):
        """Physical index of the slot `offset` steps from the write position."""
        return ((self.position + offset) % self.capacity + self.capacity) % self.capacity

    def relative(self, offset):
        """Slot `offset` steps from the write position (negative looks back)."""
        return self.buffer[self.index(offset)]

    def get(self, n):
        """
        N-th most recent value (n=1 is the newest).

        Only meaningful while num_written >= n.
        """
        return self.relative(-n)

    def latest(self, count=None):
        """Most recent `count` slots in chronological order (a copy)."""
        count = self.capacity if count is None else count
        indices = (self.position - count + np.arange(count)) % self.capacity
        return self.buffer[indices]
