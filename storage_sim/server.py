"""HTTP API server for the storage controller."""

from __future__ import annotations

import json
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any

from .allocator import AllocationError, optimize
from .engine import StorageController
from .state_codec import UsageValidationError, clamp_base_unit_size


def _require_non_negative_int(body: dict[str, Any], name: str) -> int:
    value = body[name]
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise UsageValidationError(f"{name} must be a non-negative integer")
    return value


class StorageHTTPServer:
    def __init__(
        self,
        controller: StorageController,
        host: str = "127.0.0.1",
        port: int = 8000,
        mode: str = "headless",
    ):
        self.controller = controller
        self.mode = mode
        self._lock = threading.RLock()

        handler_cls = self._build_handler()
        self.httpd = ThreadingHTTPServer((host, port), handler_cls)
        self.host, self.port = self.httpd.server_address

    def _build_handler(self):
        parent = self

        class Handler(BaseHTTPRequestHandler):
            server_version = "StorageSim/1.0"

            def log_message(self, fmt: str, *args):
                return

            def _send_json(self, code: int, payload: dict[str, Any]):
                body = json.dumps(payload).encode("utf-8")
                self.send_response(code)
                self.send_header("Content-Type", "application/json")
                self.send_header("Content-Length", str(len(body)))
                self.end_headers()
                self.wfile.write(body)

            def _read_json(self) -> dict[str, Any]:
                length = int(self.headers.get("Content-Length", "0"))
                if length == 0:
                    return {}
                data = self.rfile.read(length)
                try:
                    obj = json.loads(data.decode("utf-8"))
                except json.JSONDecodeError as exc:
                    raise UsageValidationError(f"Invalid JSON body: {exc}") from exc
                if not isinstance(obj, dict):
                    raise UsageValidationError("JSON body must be an object")
                return obj

            def do_GET(self):
                ctl = parent.controller
                with parent._lock:
                    if self.path == "/health":
                        self._send_json(200, {"mode": parent.mode, "ready": True, "training": ctl.is_training})
                        return

                    if self.path == "/state":
                        self._send_json(200, ctl.state_payload())
                        return

                    if self.path == "/metrics":
                        self._send_json(200, {"metrics": [m.to_dict() for m in ctl.metrics()]})
                        return

                    if self.path == "/history":
                        self._send_json(200, {"history": [h.to_dict() for h in ctl.history()]})
                        return

                    if self.path == "/qtable":
                        table = ctl.q_table()
                        payload = {s: {str(a): v for a, v in row.items()} for s, row in table.items()}
                        self._send_json(200, {"q_table": payload, "states": len(table)})
                        return

                self._send_json(404, {"error": "Not Found"})

            def do_POST(self):
                ctl = parent.controller
                try:
                    body = self._read_json()
                    with parent._lock:
                        if self.path == "/optimize":
                            if "used" not in body:
                                raise UsageValidationError("Missing required field: used")
                            used = _require_non_negative_int(body, "used")
                            base = clamp_base_unit_size(body.get("base_unit_size", ctl.config.base_unit_size))
                            allocation = optimize(
                                used,
                                base,
                                max_container_size=ctl.config.max_container_size,
                                buffer_percent=ctl.config.buffer_percent,
                            )
                            self._send_json(200, allocation.to_dict())
                            return

                        if self.path == "/step":
                            usage = None
                            if body.get("usage") is not None:
                                usage = _require_non_negative_int(body, "usage")
                            result = ctl.step(usage)
                            self._send_json(200, result.to_dict())
                            return

                        if self.path in ("/add", "/remove"):
                            if "amount" not in body:
                                raise UsageValidationError("Missing required field: amount")
                            if self.path == "/add":
                                result = ctl.add_usage(body["amount"])
                            else:
                                result = ctl.remove_usage(body["amount"])
                            self._send_json(200, {"accepted": result is not None, "state": ctl.state_payload()})
                            return

                        if self.path == "/config":
                            if "base_unit_size" not in body:
                                raise UsageValidationError("Missing required field: base_unit_size")
                            size = ctl.set_base_unit_size(body["base_unit_size"])
                            self._send_json(200, {"base_unit_size": size, "state": ctl.state_payload()})
                            return

                        if self.path == "/train/start":
                            started = ctl.start_training()
                            self._send_json(200, {"training": ctl.is_training, "started": started})
                            return

                        if self.path == "/train/stop":
                            stopped = ctl.stop_training()
                            self._send_json(200, {"training": ctl.is_training, "stopped": stopped})
                            return

                        if self.path == "/reset":
                            ctl.reset()
                            self._send_json(200, ctl.state_payload())
                            return

                except (UsageValidationError, AllocationError) as exc:
                    self._send_json(400, {"error": str(exc)})
                    return

                self._send_json(404, {"error": "Not Found"})

        return Handler

    def serve_forever(self):
        self.httpd.serve_forever()

    def start_background(self, daemon: bool = True) -> threading.Thread:
        thread = threading.Thread(target=self.serve_forever, daemon=daemon)
        thread.start()
        return thread

    def shutdown(self):
        self.controller.stop_training()
        self.httpd.shutdown()
        self.httpd.server_close()
