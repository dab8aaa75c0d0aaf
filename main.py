"""mvtext: extract, translate and re-apply RPG Maker MV/MZ game text.

    python main.py extract <project> -o units.json
    python main.py translate units.json -o translated.json
    python main.py apply <project> translated.json [--out DIR]
    python main.py models
"""

import argparse
import logging
import sys
from dataclasses import replace

from mvtext import __version__
from mvtext.errors import MVTextError
from mvtext.ollama_client import OllamaClient
from mvtext.project_model import (
    load_extracted_units, load_translated_units, save_units,
)
from mvtext.rpgmaker_mv import RPGMakerMVParser
from mvtext.settings import SETTINGS_FILE, Settings
from mvtext.translation_engine import TranslationEngine, translate_units

log = logging.getLogger("mvtext")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mvtext",
        description="Extract and re-apply translatable text in RPG Maker MV/MZ projects.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Show debug logging.")
    parser.add_argument("--settings", default=None,
                        help="Settings file (default: _settings.json beside main.py).")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("extract", help="Write every translatable unit of a project to JSON.")
    p.add_argument("project", help="Game folder (parent of data/ or www/data/).")
    p.add_argument("-o", "--output", required=True, help="Units file to write.")

    p = sub.add_parser("translate", help="Translate a units file with a local Ollama model.")
    p.add_argument("units", help="Units file written by 'extract'.")
    p.add_argument("-o", "--output", required=True, help="Translated units file to write.")
    p.add_argument("-m", "--model", help="Ollama model name.")
    p.add_argument("--url", help="Ollama server URL.")
    p.add_argument("--from", dest="source_language", help="Source language.")
    p.add_argument("--to", dest="target_language", help="Target language.")
    p.add_argument("-w", "--workers", type=int, help="Parallel translation workers.")
    p.add_argument("--save-settings", action="store_true",
                   help="Store the options above in the settings file for later runs.")

    p = sub.add_parser("apply", help="Write translated units back into a project.")
    p.add_argument("project", help="Game folder (parent of data/ or www/data/).")
    p.add_argument("units", help="Translated units file written by 'translate'.")
    p.add_argument("--out", dest="output_dir",
                   help="Write patched files here instead of the live data folder.")

    p = sub.add_parser("models", help="List the models installed on the Ollama server.")
    p.add_argument("--url", help="Ollama server URL.")
    return parser


def cmd_extract(args, settings: Settings) -> int:
    parser = RPGMakerMVParser(backup_suffix=settings.backup_suffix)
    units = parser.load_project(args.project)
    save_units(args.output, units)
    log.info("Extracted %d units to %s", len(units), args.output)
    return 1 if parser.errors else 0


def _run_engine(client: OllamaClient, units: list, workers: int) -> list:
    """Translate with QThread workers under a headless Qt event loop."""
    from PyQt6.QtCore import QCoreApplication

    app = QCoreApplication.instance() or QCoreApplication(sys.argv[:1])
    engine = TranslationEngine(client, num_workers=workers)
    engine.progress.connect(
        lambda done, total, text: log.info("[%d/%d] %s", done, total, text))
    done = []
    engine.finished.connect(lambda: done.append(True))
    engine.finished.connect(app.quit)
    engine.translate_batch(units)
    # Worker completion is delivered through the event loop
    if not done:
        app.exec()
    return engine.results


def _with_overrides(args, settings: Settings) -> Settings:
    """Settings with the command-line options that were given applied."""
    overrides = {
        "ollama_url": args.url,
        "model": args.model,
        "source_language": args.source_language,
        "target_language": args.target_language,
        "workers": args.workers,
    }
    return replace(settings, **{k: v for k, v in overrides.items() if v is not None})


def cmd_translate(args, settings: Settings) -> int:
    settings = _with_overrides(args, settings)
    if args.save_settings:
        path = args.settings or SETTINGS_FILE
        settings.save(path)
        log.info("Saved settings to %s", path)

    client = OllamaClient(settings.ollama_url, settings.model, timeout=settings.timeout)
    client.source_language = settings.source_language
    client.target_language = settings.target_language
    if not client.is_available():
        log.error("Ollama is not reachable at %s", client.base_url)
        return 1

    units = load_extracted_units(args.units)
    workers = settings.workers
    if workers > 1 and len(units) > 1:
        results = _run_engine(client, units, workers)
    else:
        results = translate_units(client, units)

    save_units(args.output, results)
    failed = sum(1 for r in results if r.error is not None)
    log.info("Translated %d units (%d failed) to %s", len(results), failed, args.output)
    return 0


def cmd_apply(args, settings: Settings) -> int:
    parser = RPGMakerMVParser(backup_suffix=settings.backup_suffix)
    units = load_translated_units(args.units)
    report = parser.save_project(args.project, units, output_dir=args.output_dir)

    skipped = 0
    for diagnostics in report.values():
        for diag in diagnostics:
            log.debug("%s", diag)
        skipped += len(diagnostics)
    log.info("Applied %d units to %d files, %d skipped",
             len(units) - skipped, len(report), skipped)
    return 1 if parser.errors else 0


def cmd_models(args, settings: Settings) -> int:
    client = OllamaClient(args.url or settings.ollama_url, settings.model,
                          timeout=settings.timeout)
    if not client.is_available():
        log.error("Ollama is not reachable at %s", client.base_url)
        return 1
    models = client.list_models()
    for name in models:
        print(name)
    log.info("%d models at %s", len(models), client.base_url)
    return 0


COMMANDS = {
    "extract": cmd_extract,
    "translate": cmd_translate,
    "apply": cmd_apply,
    "models": cmd_models,
}


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )
    settings = Settings.load(args.settings) if args.settings else Settings.load()

    try:
        return COMMANDS[args.command](args, settings)
    except (MVTextError, OSError) as exc:
        log.error("%s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
