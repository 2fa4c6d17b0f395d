"""Command line entry point.

    narrator narrate video.mp4 --script script.txt --languages pt en es
    narrator cta a.mp4:en b.mp4:es --text "Compre Agora!"
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from narrator.config import get_settings
from narrator.constants.catalog import LANGUAGES, VOICES
from narrator.logging_config import configure_logging
from narrator.render.pipeline import ExportOrchestrator
from narrator.schemas.element import ElementList, default_cta
from narrator.schemas.export import BatchExportResult, DurationPolicy, ExportStatus, SubtitleAnchor
from narrator.services.cta_batch_service import CtaBatchBuilder, VideoSlot
from narrator.services.export_service import NarratedExportOptions, NarratedExportService
from narrator.services.narration_assembler import TimedAudioAssembler
from narrator.services.speech_service import GeminiSpeechSynthesizer
from narrator.services.translation_service import GeminiTranslator
from narrator.services.variant_store import VariantStore

logger = logging.getLogger(__name__)


def _print_progress(percent: float, message: str) -> None:
    print(f"\r{message} [{percent:5.1f}%]", end="", file=sys.stderr, flush=True)


def _load_elements(path: str | None) -> list:
    if not path:
        return []
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if isinstance(data, list):
        data = {"elements": data}
    return ElementList.model_validate(data).elements


def _report(result: BatchExportResult) -> int:
    print(file=sys.stderr)
    for job in result.results:
        if job.artifact_path:
            print(job.artifact_path)
        elif job.error:
            print(f"{job.language}: {job.error.code} {job.error.message}", file=sys.stderr)
    return 0 if result.status == ExportStatus.COMPLETED else 1


async def run_narrate(args: argparse.Namespace) -> int:
    script = Path(args.script).read_text(encoding="utf-8")
    elements = _load_elements(args.elements)

    assembler = TimedAudioAssembler(GeminiTranslator(), GeminiSpeechSynthesizer())
    assembly = await assembler.assemble(script, args.voice, args.languages, elements)
    for language, error in assembly.failures.items():
        logger.error(f"{language}: {error.message}")
    if not assembly.variants:
        return 1

    store = VariantStore(elements)
    store.replace_variants(assembly.variants)
    options = NarratedExportOptions(
        start_offset=args.start,
        duration_policy=DurationPolicy(args.duration),
        end_padding=args.padding,
        subtitle_anchor=SubtitleAnchor(x=args.subtitle_x, y=args.subtitle_y),
        original_volume=args.original_volume,
    )

    orchestrator = ExportOrchestrator()
    orchestrator.set_progress_callback(_print_progress)
    batch = NarratedExportService(store, args.source).batch(options)
    return _report(await orchestrator.run_batch(batch))


async def run_cta(args: argparse.Namespace) -> int:
    slots = []
    for entry in args.videos:
        path, _, language = entry.rpartition(":")
        if not path:
            path, language = entry, get_settings().native_language
        slots.append(VideoSlot(source_path=path, language=language))

    master = default_cta()
    if args.text:
        master = master.model_copy(update={"content": args.text})

    batch = CtaBatchBuilder(GeminiTranslator()).build(slots, master)
    orchestrator = ExportOrchestrator()
    orchestrator.set_progress_callback(_print_progress)
    return _report(await orchestrator.run_batch(batch))


def build_parser() -> argparse.ArgumentParser:
    settings = get_settings()
    parser = argparse.ArgumentParser(prog="narrator", description="Narrated multilingual video export")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    narrate = sub.add_parser("narrate", help="Generate narration variants and export them")
    narrate.add_argument("source", help="Source video")
    narrate.add_argument("--script", required=True, help="Narration script file")
    narrate.add_argument("--languages", nargs="+", default=[settings.native_language], choices=sorted(LANGUAGES))
    narrate.add_argument("--voice", default=settings.default_voice, choices=sorted(VOICES))
    narrate.add_argument("--elements", help="JSON file with overlay elements")
    narrate.add_argument("--start", type=float, default=0.0, help="Start offset in seconds")
    narrate.add_argument(
        "--duration",
        default=DurationPolicy.AUTOMATIC.value,
        choices=[DurationPolicy.AUTOMATIC.value, DurationPolicy.NARRATION_LENGTH.value],
    )
    narrate.add_argument("--padding", type=float, default=settings.default_end_padding_s)
    narrate.add_argument("--subtitle-x", type=float, default=settings.default_subtitle_anchor_x)
    narrate.add_argument("--subtitle-y", type=float, default=settings.default_subtitle_anchor_y)
    narrate.add_argument("--original-volume", type=float, default=0.0, help="0 mutes the source audio")
    narrate.set_defaults(handler=run_narrate)

    cta = sub.add_parser("cta", help="Stamp a translated CTA onto up to five videos")
    cta.add_argument("videos", nargs="+", help="PATH:LANG pairs")
    cta.add_argument("--text", help="Master CTA text")
    cta.set_defaults(handler=run_cta)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging("DEBUG" if args.verbose else None)
    return asyncio.run(args.handler(args))


if __name__ == "__main__":
    sys.exit(main())
