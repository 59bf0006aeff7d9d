"""HTTP server exposing the transcription endpoint."""

import contextlib
import logging
import select
import socket
import threading
from collections.abc import Iterator
from typing import Any

from flask import Flask, Response, request
from werkzeug.exceptions import RequestEntityTooLarge
from werkzeug.utils import secure_filename

from core.config import settings
from core.utils import error_body, json_response
from lfasr.handler import transcribe_json, transcribe_upload

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Multipart boundaries and option fields on top of the audio itself
FORM_OVERHEAD_BYTES = 1024 * 1024
DISCONNECT_POLL_SECONDS = 0.5

# Client sockets as exposed by the werkzeug and gunicorn servers
SOCKET_ENVIRON_KEYS = ("werkzeug.socket", "gunicorn.socket")

app = Flask(__name__)
# Base64 JSON bodies are a third larger than the audio they carry
app.config["MAX_CONTENT_LENGTH"] = int(settings.lfasr_max_file_bytes) * 4 // 3 + FORM_OVERHEAD_BYTES


@app.errorhandler(RequestEntityTooLarge)
def request_too_large(_error: RequestEntityTooLarge) -> Response:
    return json_response(error_body("Audio content is too large", "INVALID_INPUT"), 413)


@app.route("/transcribe", methods=["POST"])
def transcribe_endpoint() -> Response:
    """
    Transcribe uploaded audio.

    Accepts either a multipart form with a "file" part (plus optional
    "fileName" and option fields) or a JSON body with base64 PCM. The job
    is cancelled if the client disconnects while it is running.
    """
    upload = request.files.get("file")
    if upload is not None:
        file_name = request.form.get("fileName") or upload.filename or ""
        audio = upload.read()
        with cancel_on_disconnect(request.environ) as cancel:
            body, status = transcribe_upload(audio, secure_filename(file_name), request.form, cancel=cancel)
        return json_response(body, status)

    payload = request.get_json(silent=True)
    if payload is None:
        return json_response(
            error_body("Request must be multipart with a file part or a JSON body", "INVALID_INPUT"),
            400,
        )

    with cancel_on_disconnect(request.environ) as cancel:
        body, status = transcribe_json(payload, cancel=cancel)
    return json_response(body, status)


@app.route("/health", methods=["GET"])
def health() -> Response:
    return json_response({"status": "ok"})


@contextlib.contextmanager
def cancel_on_disconnect(environ: dict[str, Any]) -> Iterator[threading.Event]:
    """
    Yield a cancel token that is set once the client closes its connection.

    The request body must already be consumed: from then on the only thing
    the client can do to its socket is close it. Without a socket in the
    WSGI environ the token is still returned but never set.
    """
    cancel = threading.Event()
    sock = next((environ[key] for key in SOCKET_ENVIRON_KEYS if environ.get(key) is not None), None)
    if sock is None:
        yield cancel
        return

    finished = threading.Event()
    watcher = threading.Thread(target=_watch_socket, args=(sock, cancel, finished), daemon=True)
    watcher.start()
    try:
        yield cancel
    finally:
        finished.set()
        watcher.join()


def _watch_socket(sock: socket.socket, cancel: threading.Event, finished: threading.Event) -> None:
    while not finished.wait(DISCONNECT_POLL_SECONDS):
        if _peer_closed(sock):
            logger.warning("Client disconnected, cancelling transcription")
            cancel.set()
            return


def _peer_closed(sock: socket.socket) -> bool:
    try:
        readable, _, _ = select.select([sock], [], [], 0)
        if not readable:
            return False
        return sock.recv(1, socket.MSG_PEEK) == b""
    except (OSError, ValueError):
        return True


def run() -> None:
    app.run(host="0.0.0.0", port=5001)


if __name__ == "__main__":
    run()
