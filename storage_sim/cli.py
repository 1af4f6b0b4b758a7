"""CLI entrypoint for the storage simulator."""

from __future__ import annotations

import argparse

from .allocator import DEFAULT_BASE_UNIT_SIZE
from .engine import ControllerConfig, StorageController
from .server import StorageHTTPServer


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Self-tuning storage capacity simulator")
    sub = parser.add_subparsers(dest="mode", required=True)

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--host", default="127.0.0.1")
    common.add_argument("--port", type=int, default=8000)
    common.add_argument("--base-unit-size", type=int, default=DEFAULT_BASE_UNIT_SIZE, help="Idle container size, 10..100 GB")
    common.add_argument("--tick-ms", type=int, default=100, help="Autonomous training tick period")
    common.add_argument("--seed", type=int, default=None)

    headless = sub.add_parser("headless", parents=[common], help="Run headless HTTP simulator")
    headless.add_argument("--train", action="store_true", help="Start autonomous training immediately")
    headless.add_argument("--initial-usage", type=int, default=0)

    return parser


def main():
    parser = build_parser()
    args = parser.parse_args()

    if args.tick_ms < 1:
        parser.error("--tick-ms must be >= 1")

    config = ControllerConfig(base_unit_size=args.base_unit_size, tick_interval=args.tick_ms / 1000.0)
    controller = StorageController(config=config, seed=args.seed)

    if args.mode == "headless":
        server = StorageHTTPServer(controller=controller, host=args.host, port=args.port, mode="headless")
        if args.initial_usage > 0:
            controller.add_usage(args.initial_usage)
        if args.train:
            controller.start_training()
        print(f"Storage headless server listening on http://{server.host}:{server.port}")
        try:
            server.serve_forever()
        except KeyboardInterrupt:
            pass
        finally:
            server.shutdown()
        return

    parser.error(f"Unsupported mode: {args.mode}")


if __name__ == "__main__":
    main()
