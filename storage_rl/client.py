"""HTTP client for the storage simulator server."""

from __future__ import annotations

import json
from typing import Any
from urllib import request


class StorageAPIClient:
    def __init__(self, host: str = "127.0.0.1", port: int = 8000, timeout: float = 10.0):
        self.base = f"http://{host}:{port}"
        self.timeout = timeout

    def _call(self, method: str, path: str, payload: dict | None = None) -> dict:
        data = None
        headers = {}
        if payload is not None:
            data = json.dumps(payload).encode("utf-8")
            headers["Content-Type"] = "application/json"
        req = request.Request(url=f"{self.base}{path}", method=method, data=data, headers=headers)
        with request.urlopen(req, timeout=self.timeout) as resp:
            return json.loads(resp.read().decode("utf-8"))

    def health(self) -> dict:
        return self._call("GET", "/health")

    def get_state(self) -> dict:
        return self._call("GET", "/state")

    def metrics(self) -> list[dict]:
        return self._call("GET", "/metrics")["metrics"]

    def history(self) -> list[dict]:
        return self._call("GET", "/history")["history"]

    def q_table(self) -> dict[str, dict[int, float]]:
        out = self._call("GET", "/qtable")
        return {s: {int(a): float(v) for a, v in row.items()} for s, row in out["q_table"].items()}

    def optimize(self, used: int, base_unit_size: int | None = None) -> dict:
        payload: dict[str, Any] = {"used": int(used)}
        if base_unit_size is not None:
            payload["base_unit_size"] = int(base_unit_size)
        return self._call("POST", "/optimize", payload)

    def step(self, usage: int | None = None) -> dict:
        payload = {} if usage is None else {"usage": int(usage)}
        return self._call("POST", "/step", payload)

    def add(self, amount: Any) -> bool:
        return bool(self._call("POST", "/add", {"amount": amount})["accepted"])

    def remove(self, amount: Any) -> bool:
        return bool(self._call("POST", "/remove", {"amount": amount})["accepted"])

    def set_base_unit_size(self, value: Any) -> int:
        return int(self._call("POST", "/config", {"base_unit_size": value})["base_unit_size"])

    def start_training(self) -> dict:
        return self._call("POST", "/train/start", {})

    def stop_training(self) -> dict:
        return self._call("POST", "/train/stop", {})

    def reset(self) -> dict:
        return self._call("POST", "/reset", {})
