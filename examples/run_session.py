"""Connect to a Monocle and run a session with echo AI services.

Usage:
    uv run python examples/run_session.py AA:BB:CC:DD:EE:FF --scripts ./monocle_scripts
    uv run python examples/run_session.py AA:BB:CC:DD:EE:FF --scripts ./scripts --fpga monocle-fpga.bin -v
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from datetime import datetime
from pathlib import Path

from noa import (
    AudioClip,
    BLEConnectionError,
    DeviceState,
    Message,
    Mode,
    MonocleConnection,
    SessionConfig,
    SessionStateMachine,
)


def _timestamp() -> str:
    return datetime.now().strftime("%H:%M:%S")


class ConsoleMessages:
    """Print chat messages instead of showing them in a UI."""

    def put_message(self, message: Message) -> None:
        if message.typing_in_progress:
            return
        kind = "ERROR " if message.is_error else ""
        picture = f" [picture {message.picture.size}]" if message.picture else ""
        print(f"[{_timestamp()}] {kind}{message.participant.value}: {message.text}{picture}")


class EchoTranscriber:
    """Stand-in transcriber reporting only what it received."""

    async def transcribe(self, audio: AudioClip, mode: Mode) -> str:
        return f"({audio.duration:.1f}s of audio)"


class EchoChat:
    """Stand-in chat service that repeats the query."""

    async def converse(self, query: str, mode: Mode) -> str:
        return f"You said: {query}"

    def clear_history(self) -> None:
        pass


async def run(address: str, config: SessionConfig) -> None:
    """Connect, run the session and reconnect whenever the device drops."""
    def on_device_state(state: DeviceState) -> None:
        print(f"[{_timestamp()}] device state: {state.value}")

    def on_progress(percent: int) -> None:
        print(f"[{_timestamp()}] update progress: {percent}%")

    def post(event) -> None:
        session.post(event)

    connection = MonocleConnection(address, on_event=post)
    session = SessionStateMachine(
        connection,
        ConsoleMessages(),
        EchoTranscriber(),
        EchoChat(),
        config=config,
        on_device_state=on_device_state,
        on_progress=on_progress,
    )
    session_task = asyncio.create_task(session.run())

    try:
        while True:
            if not connection.is_connected:
                try:
                    await connection.connect()
                except BLEConnectionError as e:
                    print(f"[{_timestamp()}] {e}, retrying")
            await asyncio.sleep(5.0)
    finally:
        session_task.cancel()
        await connection.disconnect()


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("address", help="Monocle MAC address")
    parser.add_argument("--scripts", type=Path, required=True, help="Directory with the device scripts")
    parser.add_argument("--fpga", type=Path, default=None, help="FPGA image (.bin)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = SessionConfig(script_directory=args.scripts, fpga_image_path=args.fpga)
    try:
        asyncio.run(run(args.address, config))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
