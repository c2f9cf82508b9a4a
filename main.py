from flask import Flask, request, jsonify
from flask_cors import CORS
import os
from pathlib import Path
import time
import base64
import binascii

from shazam_signature.codec import decode_from_uri, encode_to_uri
from shazam_signature.config import AudioConfig, GeneratorConfig, ServerConfig
from shazam_signature.errors import SignatureError
from shazam_signature.fingerprint import fingerprint_audio, summarize_signature
from shazam_signature.logging_config import setup_logger

logger = setup_logger(__name__)

app = Flask(__name__)
CORS(app)

app.config["MAX_CONTENT_LENGTH"] = ServerConfig.MAX_CONTENT_LENGTH
app.config["UPLOAD_FOLDER"] = ServerConfig.UPLOAD_FOLDER


def upload_path(prefix, filename=""):
    folder = Path(app.config["UPLOAD_FOLDER"])
    folder.mkdir(parents=True, exist_ok=True)
    return str(folder / f"{prefix}_{time.time()}_{os.path.basename(filename)}")


def signatures_from_file(filepath):
    start_time = time.time()
    signatures, metadata = fingerprint_audio(filepath, visualize=False)
    elapsed = time.time() - start_time

    return {
        "success": True,
        "signatures": [
            {
                "offset": round(offset, 3),
                "uri": encode_to_uri(signature),
                "samplems": signature.sample_ms,
                **summarize_signature(signature),
            }
            for offset, signature in signatures
        ],
        "duration": round(metadata["duration"], 3),
        "query_time": round(elapsed * 1000, 1),
    }


@app.errorhandler(SignatureError)
def handle_signature_error(e):
    logger.warning(f"Rejected signature: {e}")
    return jsonify({"success": False, "message": str(e)}), 400


@app.route("/api/status")
def api_status():
    return jsonify(
        {
            "status": "ok",
            "generator": {
                "sample_rate": AudioConfig.SAMPLE_RATE,
                "max_time_seconds": GeneratorConfig.MAX_TIME_SECONDS,
                "max_peaks": GeneratorConfig.MAX_PEAKS,
            },
        }
    )


@app.route("/api/signature", methods=["POST"])
def api_signature():
    if "file" not in request.files:
        return jsonify({"success": False, "message": "No file"}), 400

    file = request.files["file"]
    filepath = upload_path("upload", file.filename)

    try:
        file.save(filepath)
        return jsonify(signatures_from_file(filepath))
    except Exception as e:
        logger.error(f"Error: {e}")
        return jsonify({"success": False, "message": str(e)}), 500
    finally:
        if os.path.exists(filepath):
            os.remove(filepath)


@app.route("/api/record", methods=["POST"])
def api_record():
    data = request.get_json(silent=True) or {}
    if "audio_data" not in data:
        return jsonify({"success": False, "message": "No audio_data"}), 400

    audio_data = (
        data["audio_data"].split(",")[1]
        if "," in data["audio_data"]
        else data["audio_data"]
    )
    try:
        audio_bytes = base64.b64decode(audio_data, validate=True)
    except binascii.Error as e:
        return jsonify({"success": False, "message": f"Invalid base64: {e}"}), 400

    filepath = upload_path("recording", "recording.wav")

    try:
        with open(filepath, "wb") as f:
            f.write(audio_bytes)
        return jsonify(signatures_from_file(filepath))
    except Exception as e:
        logger.error(f"Error: {e}")
        return jsonify({"success": False, "message": str(e)}), 500
    finally:
        if os.path.exists(filepath):
            os.remove(filepath)


@app.route("/api/decode", methods=["POST"])
def api_decode():
    data = request.get_json(silent=True) or {}
    if "uri" not in data:
        return jsonify({"success": False, "message": "No uri"}), 400

    signature = decode_from_uri(data["uri"])
    return jsonify({"success": True, "signature": signature.to_dict()})


def main():
    print(
        f"\n🌐 Starting web server at http://localhost:{ServerConfig.PORT}\n"
    )
    app.run(host=ServerConfig.HOST, port=ServerConfig.PORT, debug=False)


if __name__ == "__main__":
    main()
