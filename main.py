"""High-level API + CLI for the receipt scanning pipeline."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Any

import yaml

from extraction import ExtractionConfig, ExtractionEngine
from normalization import NormalizationOptions, RasterImage, normalize
from pipeline import PipelineOutcome, ReceiptPipeline, run_jobs
from pipeline.serialization import json_sanitize, load_receipt, save_json
from recognition import PaddleOCRAdapter, RecognitionAdapter, TextFileAdapter, read_transcription
from validation import ReceiptValidator, ValidationConfig

CONFIG_PIPELINE = Path("configs/pipeline.yaml")

logger = logging.getLogger(__name__)


def load_config(config_path: str | Path | None = CONFIG_PIPELINE) -> dict[str, Any]:
    """Read the YAML config; a missing default file means built-in defaults."""
    if config_path is None:
        return {}
    path = Path(config_path)
    if not path.exists():
        if path == CONFIG_PIPELINE:
            logger.info("No %s found; using defaults", path)
            return {}
        raise FileNotFoundError(f"config not found: {path}")
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


class ReceiptScannerAPI:
    """High-level orchestration API usable from CLI or notebooks."""

    def __init__(self, config_path: str | Path | None = CONFIG_PIPELINE):
        cfg = load_config(config_path)
        self._cfg = cfg
        self.options = NormalizationOptions.from_dict(cfg.get("normalization"))
        self.engine = ExtractionEngine(ExtractionConfig.from_dict(cfg.get("extraction")))
        self.validator = ReceiptValidator(ValidationConfig.from_dict(cfg.get("validation")))
        self.max_workers = int((cfg.get("pipeline") or {}).get("max_workers", 4))
        self._paddle: PaddleOCRAdapter | None = None

    def _recognizer(self, ocr_txt: str | Path | None) -> RecognitionAdapter:
        if ocr_txt is not None:
            return TextFileAdapter(ocr_txt)
        rec_cfg = self._cfg.get("recognition") or {}
        if rec_cfg.get("engine", "paddleocr") == "txt":
            raise ValueError("recognition.engine is 'txt' but no transcription was given")
        if self._paddle is None:
            self._paddle = PaddleOCRAdapter(
                lang=rec_cfg.get("lang", "en"),
                use_angle_cls=bool(rec_cfg.get("use_angle_cls", True)),
                block_gap_ratio=float(rec_cfg.get("block_gap_ratio", 1.0)),
            )
        return self._paddle

    def build_pipeline(self, ocr_txt: str | Path | None = None) -> ReceiptPipeline:
        return ReceiptPipeline(
            recognizer=self._recognizer(ocr_txt),
            engine=self.engine,
            validator=self.validator,
            options=self.options,
        )

    def _transcription_for(self, image_path: str | Path) -> Path | None:
        if (self._cfg.get("recognition") or {}).get("engine") == "txt":
            # Transcription stored next to the image, same stem
            return Path(image_path).with_suffix(".txt")
        return None

    def scan(self, image_path: str | Path, ocr_txt: str | Path | None = None) -> PipelineOutcome:
        if ocr_txt is None:
            ocr_txt = self._transcription_for(image_path)
        pipe = self.build_pipeline(ocr_txt)
        return pipe.run(
            image_path,
            on_event=lambda ev: logger.info("[%s] %.0f%% %s", ev.stage.name, ev.progress * 100, ev.message),
        )

    def scan_many(self, image_paths: list[Path]) -> list[PipelineOutcome]:
        """Scan every image concurrently; one outcome per path, in order.

        Files are loaded inside their own job, so an unreadable image only
        fails that job.
        """
        jobs = [(self.build_pipeline(self._transcription_for(p)), p) for p in image_paths]
        return run_jobs(jobs, max_workers=self.max_workers, show_progress=True)

    def normalize_image(self, image_path: str | Path, out_path: str | Path) -> dict[str, Any]:
        result = normalize(RasterImage.from_file(image_path), self.options)
        result.processed_image.save(out_path)
        return result.to_dict()

    def extract_text(self, txt_path: str | Path) -> dict[str, Any]:
        receipt = self.engine.extract(read_transcription(txt_path))
        validation = self.validator.validate(receipt)
        return {"receipt": receipt.to_dict(), "validation": validation.to_dict()}

    def validate_file(self, receipt_json: str | Path) -> dict[str, Any]:
        return self.validator.validate(load_receipt(receipt_json)).to_dict()


# -------------------- CLI commands --------------------

def _emit(data: Any, out: str | None) -> None:
    if out:
        save_json(data, out)
        print(f"[saved] {out}")
    else:
        print(json.dumps(json_sanitize(data), indent=2, ensure_ascii=False))


def cmd_scan(args: argparse.Namespace) -> None:
    api = ReceiptScannerAPI(args.config)
    outcome = api.scan(args.image, ocr_txt=args.ocr_txt)
    _emit(outcome.to_dict(), args.out)


def cmd_batch(args: argparse.Namespace) -> None:
    api = ReceiptScannerAPI(args.config)
    paths = [Path(p) for p in args.images]
    outcomes = api.scan_many(paths)
    ok = sum(1 for o in outcomes if o.succeeded)
    print(f"[batch] {ok}/{len(outcomes)} receipts processed successfully")
    if args.out_dir:
        for p, o in zip(paths, outcomes):
            save_json(o.to_dict(), Path(args.out_dir) / f"{p.stem}.json")


def cmd_normalize(args: argparse.Namespace) -> None:
    api = ReceiptScannerAPI(args.config)
    summary = api.normalize_image(args.image, args.out)
    print(json.dumps(summary, indent=2, ensure_ascii=False))


def cmd_extract(args: argparse.Namespace) -> None:
    api = ReceiptScannerAPI(args.config)
    _emit(api.extract_text(args.txt), args.out)


def cmd_validate(args: argparse.Namespace) -> None:
    api = ReceiptScannerAPI(args.config)
    _emit(api.validate_file(args.receipt_json), args.out)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Receipt scanning pipeline")
    parser.add_argument("--config", default=str(CONFIG_PIPELINE), help="Path to pipeline YAML config")
    parser.add_argument("--log-level", default="WARNING", help="Logging level (DEBUG, INFO, ...)")
    sub = parser.add_subparsers(dest="command", required=True)

    scan_p = sub.add_parser("scan", help="Run the full pipeline on one image")
    scan_p.add_argument("image", help="Receipt image path")
    scan_p.add_argument("--ocr-txt", default=None, help="Use this transcription instead of PaddleOCR")
    scan_p.add_argument("--out", default=None, help="Write JSON here instead of stdout")

    batch_p = sub.add_parser("batch", help="Run the pipeline on several images concurrently")
    batch_p.add_argument("images", nargs="+", help="Receipt image paths")
    batch_p.add_argument("--out-dir", default=None, help="Directory for per-image JSON outcomes")

    norm_p = sub.add_parser("normalize", help="Normalize an image for OCR")
    norm_p.add_argument("image", help="Receipt image path")
    norm_p.add_argument("out", help="Output image path (PNG)")

    extract_p = sub.add_parser("extract", help="Extract fields from a text transcription")
    extract_p.add_argument("txt", help="Transcription .txt path")
    extract_p.add_argument("--out", default=None)

    validate_p = sub.add_parser("validate", help="Validate a receipt JSON file")
    validate_p.add_argument("receipt_json", help="Receipt JSON produced by 'extract' or 'scan'")
    validate_p.add_argument("--out", default=None)

    return parser


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()
    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    commands = {
        "scan": cmd_scan,
        "batch": cmd_batch,
        "normalize": cmd_normalize,
        "extract": cmd_extract,
        "validate": cmd_validate,
    }
    commands[args.command](args)


if __name__ == "__main__":
    main()
