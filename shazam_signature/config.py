class AudioConfig:
    """Configuration for PCM input"""

    # Signatures are generated from 16 kHz mono 16-bit PCM
    SAMPLE_RATE = 16000
    PCM_FULL_SCALE = 32768


class GeneratorConfig:
    """Configuration for the streaming signature generator"""

    # Spectral analysis
    WINDOW_SIZE = 2048
    STEP_SIZE = 128
    SPECTRUM_BINS = WINDOW_SIZE // 2 + 1
    FFT_HISTORY = 256

    # Power spectrum scaling
    POWER_SCALE = 1 << 17
    POWER_FLOOR = 1e-10

    # A signature is full once either limit is reached
    MAX_TIME_SECONDS = 3.1
    MAX_PEAKS = 255


class RecognitionConfig:
    """Peak spreading and recognition parameters"""

    # Pipeline latency, in frames
    RAW_FRAME_LAG = 46
    SPREAD_FRAME_LAG = 49
    MIN_SPREAD_FRAMES = 46

    # Bins 10..1014 inclusive are examined
    FIRST_BIN = 10
    LAST_BIN = 1014

    MIN_PEAK_POWER = 1 / 64

    # Frequency-domain spreading is a running max over this many bins
    FREQ_SPREAD_WIDTH = 3

    # Historical spread frames that receive the newest frame's maxima
    TIME_SPREAD_OFFSETS = (-1, -3, -6)

    # Bin offsets compared inside the spread frame
    FREQ_NEIGHBOR_OFFSETS = (-10, -7, -4, -3, 1, 4, 7)

    # Positions relative to the spread buffer write position (mod 256)
    TIME_NEIGHBOR_OFFSETS = (
        (-53, -45) + tuple(range(165, 201, 7)) + tuple(range(214, 250, 7))
    )

    # log(power) * MAGNITUDE_SCALE + MAGNITUDE_OFFSET
    MAGNITUDE_SCALE = 1477.3
    MAGNITUDE_OFFSET = 6144

    # Sub-bin interpolation resolution
    BIN_SUBDIVISIONS = 64
    VARIATION_SCALE = 32

    # Raise on a non-positive peak curvature instead of skipping the bin
    STRICT_PEAK_VARIATION = True


class WireConfig:
    """Binary signature format constants"""

    HEADER_SIZE = 48
    MAGIC1 = 0xCAFE2580
    MAGIC2 = 0x94119C00
    MAGIC3 = (15 << 19) + 0x40000

    # Inner TLV header preceding the band records
    CONTENTS_TAG = 0x40000000
    CONTENTS_HEADER_SIZE = 8

    BAND_TAG_BASE = 0x60030040
    ABSOLUTE_PASS_MARKER = 0xFF

    SAMPLE_RATE_IDS = {
        8000: 1 << 27,
        11025: 2 << 27,
        16000: 3 << 27,
        32000: 4 << 27,
        44100: 5 << 27,
        48000: 6 << 27,
    }

    # number_samples is stored as samples + sample_rate * 0.24
    SAMPLE_COUNT_RATE_FACTOR = 0.24

    DATA_URI_PREFIX = "data:audio/vnd.shazam.sig;base64,"


class ServerConfig:
    """Configuration for the HTTP API"""

    UPLOAD_FOLDER = "./data/uploads"
    MAX_CONTENT_LENGTH = 10 * 1024 * 1024
    HOST = "0.0.0.0"
    PORT = 5000


class LoggingConfig:
    """Console logging format shared by every module"""

    FORMAT = "%(asctime)s | %(filename)s:%(lineno)d  | %(levelname)s | %(message)s"
    DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

    # Overrides the per-module level when set, e.g. "DEBUG"
    LEVEL_ENV_VAR = "SHAZAM_SIGNATURE_LOG_LEVEL"
