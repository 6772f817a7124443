"""CLI entry point."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os

from .aggregator import AudioAggregator
from .config import Config, load_config, save_config
from .converter import FfmpegConverter
from .logging_utils import setup_logging
from .models import JobOutcome
from .pipeline import PipelineOrchestrator
from .storage import ArtifactStore
from .summarizer import build_summarizer
from .transcriber import build_transcriber
from .transport import TextChannel


class PrintChannel(TextChannel):
    async def send(self, text: str) -> None:
        print(text)
        print()


def _load(path: str) -> Config:
    if path and os.path.exists(path):
        return load_config(path)
    return Config()


async def process_pcm(config: Config, pcm_path: str) -> int:
    with open(pcm_path, "rb") as handle:
        data = handle.read()

    aggregator = AudioAggregator()
    aggregator.append(data)
    orchestrator = PipelineOrchestrator(
        aggregator=aggregator,
        store=ArtifactStore(config.work_dir, "offline"),
        converter=FfmpegConverter(config.audio),
        transcriber=build_transcriber(config),
        summarizer=build_summarizer(config),
        channel=PrintChannel(),
        settings=config.pipeline,
    )
    job = await orchestrator.run_cycle()
    if job.outcome is JobOutcome.SUCCESS:
        return 0
    failed = job.failed_at.value if job.failed_at else job.outcome.value
    print(f"Cycle ended at {failed}: {job.error or 'no audio'}")
    return 1


def main() -> int:
    parser = argparse.ArgumentParser(prog="callscribe")
    parser.add_argument("--config", default="callscribe_config.yml", help="Config.")
    parser.add_argument("--verbose", action="store_true", help="Debug logging.")
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("run", help="Start the Discord bot.")

    process_cmd = sub.add_parser("process", help="Run one cycle on a raw PCM file.")
    process_cmd.add_argument("pcm_path", help="16-bit LE mono PCM file.")
    process_cmd.add_argument("--interval", type=float, help="Minutes label override.")

    transcribe_cmd = sub.add_parser("transcribe", help="Transcribe one audio file.")
    transcribe_cmd.add_argument("audio_path", help="Path to audio file.")
    transcribe_cmd.add_argument(
        "--backend", choices=["openai", "local"], help="Transcription backend."
    )

    config_cmd = sub.add_parser("config", help="Write a default config file.")
    config_cmd.add_argument("--force", action="store_true", help="Overwrite.")

    args = parser.parse_args()
    if args.command == "config":
        if os.path.exists(args.config) and not args.force:
            print(f"{args.config} already exists (use --force to overwrite).")
            return 1
        save_config(args.config, Config())
        print(f"Wrote {args.config}")
        return 0

    if args.command is None:
        parser.print_help()
        return 0

    config = _load(args.config)
    level = logging.DEBUG if args.verbose else logging.INFO
    setup_logging(config.log_dir, level=level)

    if args.command == "run":
        from .discord_bot import run_bot

        run_bot(config)
        return 0

    if args.command == "process":
        if args.interval:
            config.pipeline.interval_minutes = args.interval
        return asyncio.run(process_pcm(config, args.pcm_path))

    if args.command == "transcribe":
        if args.backend:
            config.transcription.backend = args.backend
        text = build_transcriber(config).transcribe(args.audio_path)
        print(text)
        return 0

    parser.print_help()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
