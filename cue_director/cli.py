"""
CLI - Command-line interface.

Thin wrapper over the cue extractor, story aligner and orchestrator.
"""

from __future__ import annotations

import argparse
import asyncio
import io
import json
import logging
import sys
from pathlib import Path

import numpy as np
import soundfile as sf

TONE_SAMPLE_RATE = 22050


def main(args: list[str] | None = None) -> int:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="cue-director",
        description="Live cue and playback director for ambient audio",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # cue command
    cue_parser = subparsers.add_parser("cue", help="Show the cue and commands found in text")
    cue_parser.add_argument("text", help="Transcript text")

    # align command
    align_parser = subparsers.add_parser("align", help="Follow spoken lines through a story")
    align_parser.add_argument("story", help="Path to the story text")
    align_parser.add_argument("lines", nargs="+", help="Spoken lines, in order")

    # simulate command
    sim_parser = subparsers.add_parser(
        "simulate",
        help="Run a transcript through the director offline",
    )
    sim_parser.add_argument("transcript", help="Transcript file, one final per line ('~' prefix = interim)")
    sim_parser.add_argument("--catalog", required=True, help="Catalog JSON (list or {sounds: [...]})")
    sim_parser.add_argument("--story", help="Story text to follow")
    sim_parser.add_argument("--mode", default="auto", help="Director mode (default: auto)")
    sim_parser.add_argument("--music", help="Catalog id of a track to start with")

    # version command
    subparsers.add_parser("version", help="Show version")

    parsed = parser.parse_args(args)
    logging.basicConfig(
        level=logging.DEBUG if parsed.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if parsed.command is None:
        parser.print_help()
        return 0

    if parsed.command == "version":
        from cue_director import __version__
        print(f"cue-director {__version__}")
        return 0

    if parsed.command == "cue":
        return _cmd_cue(parsed)

    if parsed.command == "align":
        return _cmd_align(parsed)

    if parsed.command == "simulate":
        return _cmd_simulate(parsed)

    return 1


def _cmd_cue(args: argparse.Namespace) -> int:
    """Handle cue command."""
    from cue_director.transcript import extract_cue, parse_commands, predictive_queries

    cue = extract_cue(args.text)
    if cue is None:
        print("No cue")
    else:
        print(f"Cue: {cue.query} (category {cue.category_key}, priority {cue.priority}, volume {cue.volume})")

    for command in parse_commands(args.text):
        suffix = f" -> {command.mode}" if command.mode else ""
        print(f"Command: {command.kind.value}{suffix}")

    predicted = predictive_queries(args.text)
    if predicted:
        print(f"Predicted: {', '.join(predicted)}")
    return 0


def _cmd_align(args: argparse.Namespace) -> int:
    """Handle align command."""
    from cue_director.story import StoryAligner
    from cue_director.transcript import story_cue

    try:
        text = Path(args.story).read_text(encoding="utf-8")
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    aligner = StoryAligner()
    aligner.open(text, title=Path(args.story).stem)
    for line in args.lines:
        result = aligner.feed(line)
        cues = [c.query for c in (story_cue(w) or story_cue(s) for w, s in result.matches) if c]
        flags = " (recovered)" if result.recovered else ""
        print(f"{line!r}: cursor {result.cursor}, at '{aligner.current_word or '<end>'}'{flags}")
        if cues:
            print(f"    cues: {', '.join(cues)}")
    return 0


def _cmd_simulate(args: argparse.Namespace) -> int:
    """Handle simulate command."""
    from cue_director.catalog import SoundCatalog

    try:
        catalog = SoundCatalog.from_payload(json.loads(Path(args.catalog).read_text(encoding="utf-8")))
        lines = Path(args.transcript).read_text(encoding="utf-8").splitlines()
        story = Path(args.story).read_text(encoding="utf-8") if args.story else None
    except (OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    try:
        asyncio.run(_simulate(catalog, lines, story, args.mode, args.music))
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


async def _simulate(catalog, lines: list[str], story: str | None, mode: str, music: str | None) -> None:
    from cue_director.decisions import ChangeTo
    from cue_director.orchestrator import PlaybackOrchestrator
    from cue_director.runtime import MemoryOutput
    from cue_director.status import StatusBoard

    output = MemoryOutput()
    status = StatusBoard(listener=lambda record: print(f"  [{record.level.value}] {record.message}"))
    director = PlaybackOrchestrator(
        fetcher=ToneFetcher(),
        output=output,
        catalog=catalog,
        mode=mode,
        status=status,
    )
    await director.start()
    await director.settle()
    if story:
        director.open_story(story)
    if music:
        await director.apply_music(ChangeTo(music))

    for line in lines:
        if not line.strip():
            continue
        is_final = not line.startswith("~")
        text = line if is_final else line[1:]
        director.submit_text(text, is_final=is_final)
        await director.join()
        print(f"{'>' if is_final else '~'} {text.strip()}")
        print(f"  {json.dumps(director.snapshot().to_dict())}")
        # effects end between lines
        for sound in director.session.sfx:
            output.finish(sound.handle)

    await director.close()


class ToneFetcher:
    """Offline AssetFetcher: every URL decodes to a short WAV tone."""

    def __init__(self, duration_s: float = 0.5, sample_rate: int = TONE_SAMPLE_RATE):
        self.duration_s = duration_s
        self.sample_rate = sample_rate

    async def fetch(self, url: str) -> bytes:
        # Pitch derived from the URL so different sounds differ.
        freq = 220.0 + (sum(url.encode()) % 440)
        t = np.arange(int(self.duration_s * self.sample_rate)) / self.sample_rate
        samples = (0.2 * np.sin(2 * np.pi * freq * t)).astype(np.float32)
        buffer = io.BytesIO()
        sf.write(buffer, samples, self.sample_rate, format="WAV")
        return buffer.getvalue()


if __name__ == "__main__":
    sys.exit(main())
