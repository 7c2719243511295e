import json
import logging
import os
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer


logger = logging.getLogger(__name__)

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8000


class DocumentSlot:
    """The last successfully compiled document, shared with request handlers."""

    def __init__(self):
        self._lock = threading.Lock()
        self._document = None
        self._version = 0

    def publish(self, document):
        with self._lock:
            self._document = document
            self._version += 1
            version = self._version
        logger.info("published document version %d", version)
        return version

    def snapshot(self):
        with self._lock:
            return self._document, self._version

    @property
    def document(self):
        return self.snapshot()[0]

    @property
    def version(self):
        return self.snapshot()[1]


def make_handler(slot):
    class GraphStateHandler(BaseHTTPRequestHandler):
        def do_GET(self):
            path = self.path.split("?", 1)[0].rstrip("/")
            document, version = slot.snapshot()

            if path == "/data/version":
                self.reply(200, str(version).encode("utf-8"), "text/plain; charset=utf-8")
                return

            if path == "/data":
                if document is None:
                    self.reply(503, b"no document compiled yet", "text/plain; charset=utf-8")
                    return
                body = json.dumps(document).encode("utf-8")
                self.reply(200, body, "application/json")
                return

            self.reply(404, b"not found", "text/plain; charset=utf-8")

        def reply(self, status, body, content_type):
            self.send_response(status)
            self.send_header("Content-Type", content_type)
            self.send_header("Content-Length", str(len(body)))
            self.send_header("Access-Control-Allow-Origin", "*")
            self.end_headers()
            self.wfile.write(body)

        def log_message(self, format, *args):
            logger.debug("%s - %s", self.address_string(), format % args)

    return GraphStateHandler


def make_server(slot, host=DEFAULT_HOST, port=DEFAULT_PORT):
    return ThreadingHTTPServer((host, port), make_handler(slot))


class SourceWatcher(threading.Thread):
    """Polls a file and republishes whenever a rebuild succeeds.

    `rebuild` is called with no arguments and returns a new document, or
    raises; a failed rebuild leaves the slot untouched.
    """

    def __init__(self, path, slot, rebuild, on_error=None, interval=0.5):
        super().__init__(daemon=True)
        self.path = path
        self.slot = slot
        self.rebuild = rebuild
        self.on_error = on_error
        self.interval = interval
        self._stop_event = threading.Event()
        self._mtime = self._current_mtime()

    def _current_mtime(self):
        try:
            return os.stat(self.path).st_mtime_ns
        except OSError:
            return None

    def poll(self):
        mtime = self._current_mtime()
        if mtime is None or mtime == self._mtime:
            return False
        self._mtime = mtime
        logger.info("%s changed, recompiling", self.path)
        try:
            document = self.rebuild()
        except Exception as e:
            if self.on_error is not None:
                self.on_error(e)
            else:
                logger.error("rebuild failed: %s", e)
            return False
        self.slot.publish(document)
        return True

    def run(self):
        while not self._stop_event.is_set():
            self.poll()
            self._stop_event.wait(self.interval)

    def stop(self):
        self._stop_event.set()


def serve(slot, host=DEFAULT_HOST, port=DEFAULT_PORT):
    httpd = make_server(slot, host, port)
    logger.info("serving graph state on http://%s:%d/data", host, port)
    try:
        httpd.serve_forever()
    except KeyboardInterrupt:
        pass
    finally:
        httpd.server_close()
