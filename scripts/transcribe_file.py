import asyncio
import os
import sys
from pathlib import Path

# Add project root to path so we can import salescoach
sys.path.append(os.getcwd())

from salescoach.services.transcribe import (
    PollTick,
    TranscriptionError,
    get_transcribe_service,
)


def print_tick(tick: PollTick) -> None:
    print(f"  ... {tick.elapsed_seconds:.0f}s status={tick.status}")


async def main():
    service = get_transcribe_service()

    file_path = Path(sys.argv[1]) if len(sys.argv) > 1 else Path("sample.mp3")
    if not file_path.exists():
        print(f"File '{file_path}' not found. Please provide a path to an audio file.")
        print("Usage: python scripts/transcribe_file.py [path/to/audio.mp3]")
        return

    print(f"Submitting {file_path} ({file_path.stat().st_size} bytes) to Rev.ai...")
    try:
        transcript = await service.transcribe(file_path, on_poll=print_tick)

        print("\n--- Transcript Result ---")
        print(transcript)
        print("-------------------------")

    except TranscriptionError as e:
        print(f"\nTranscription Error: {e}")
    finally:
        await service.aclose()

if __name__ == "__main__":
    asyncio.run(main())
