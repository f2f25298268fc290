#!/usr/bin/env python3
from __future__ import annotations

import argparse
import asyncio
import sys
import time
from pathlib import Path

from spycam.config import PipelineConfig
from spycam.logging_setup import setup_logging
from spycam.pipeline.encoding import decode_bitmap
from spycam.services.diagnostics import DIAGNOSTIC_FILENAME
from spycam.services.session import CaptureSession, FrameOutcome
from spycam.services.sources import build_test_frame
from spycam.services.transport import DisplayTransport, TxMessage, TxSprite


class CollectingTransport(DisplayTransport):
    def __init__(self) -> None:
        self.sent: list[TxMessage] = []

    async def send_message(self, message: TxMessage) -> int:
        self.sent.append(message)
        return 1


async def run(args: argparse.Namespace) -> int:
    config = PipelineConfig(
        frame_interval_ms=0,
        threshold=args.threshold,
        diagnostics={"enabled": bool(args.save_dir)},
    )
    transport = CollectingTransport()
    session = CaptureSession(transport=transport, config=config, diagnostics_dir=args.save_dir or None)
    await session.start()

    total_ms = 0.0
    for index in range(args.frames):
        frame = build_test_frame(args.width, args.height, index)

        start = time.perf_counter()
        outcome = await session.handle_frame(frame)
        elapsed_ms = (time.perf_counter() - start) * 1000.0
        total_ms += elapsed_ms

        if outcome is not FrameOutcome.DELIVERED:
            print(f"frame={index + 1}/{args.frames} outcome={outcome.value} error={session.last_error}", file=sys.stderr)
            await session.stop()
            return 2

        sprite = transport.sent[-1]
        assert isinstance(sprite, TxSprite)
        decoded = decode_bitmap(sprite.png_bytes)
        print(
            f"frame={index + 1}/{args.frames} size={decoded.width}x{decoded.height} "
            f"png_bytes={len(sprite.png_bytes)} white={float(decoded.indices.mean()):.3f} "
            f"latency_ms={elapsed_ms:.2f}"
        )

    await session.stop()
    print(f"average latency per frame: {total_ms / max(1, args.frames):.2f} ms")
    print(f"messages sent: {[hex(message.msg_code) for message in transport.sent]}")
    if args.save_dir:
        print(f"diagnostic bitmap: {Path(args.save_dir).expanduser() / DIAGNOSTIC_FILENAME}")
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Smoke test for the frame-to-bitmap session")
    parser.add_argument("--frames", type=int, default=5, help="Number of synthetic frames to process")
    parser.add_argument("--width", type=int, default=352, help="Raw frame width")
    parser.add_argument("--height", type=int, default=288, help="Raw frame height")
    parser.add_argument("--threshold", type=int, default=128)
    parser.add_argument("--save-dir", type=str, default="", help="Optional directory for the diagnostic bitmap")
    parser.add_argument("--log-level", type=str, default="WARNING")
    args = parser.parse_args()

    setup_logging(args.log_level.upper())
    return asyncio.run(run(args))


if __name__ == "__main__":
    raise SystemExit(main())
