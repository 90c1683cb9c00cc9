import argparse
import json
import mimetypes
from collections.abc import Callable
from dataclasses import asdict
from datetime import date
from pathlib import Path
from typing import Any

from certguard.analysis.analyzer import build_fraud_analyzer
from certguard.analysis.serializers import analysis_to_dict
from certguard.config.settings import Settings
from certguard.database.connection import close_pool, init_pool
from certguard.database.models import VerifiedCertificateRecord
from certguard.database.repositories.submissions_repository import SubmissionsRepository
from certguard.database.repositories.verified_certificates_repository import (
    VerifiedCertificatesRepository,
)
from certguard.documents.hashing import content_hash
from certguard.documents.models import RawDocument
from certguard.logging.logger import Log
from certguard.submission.models import SubmissionRequest
from certguard.submission.processor import build_submission_processor
from certguard.verification.service import VerificationService
from certguard.worker.pool import AnalysisPool


def load_document(path: Path) -> RawDocument:
    media_type, _ = mimetypes.guess_type(path.name)
    return RawDocument(
        content=path.read_bytes(),
        media_type=media_type or "application/octet-stream",
        filename=path.name,
    )


def _emit(payload: Any) -> None:
    print(json.dumps(payload, indent=2, default=str))


def run_analyze(args: argparse.Namespace, settings: Settings) -> int:
    documents = [load_document(path) for path in args.files]
    with AnalysisPool(build_fraud_analyzer(settings), settings.analysis_max_workers) as pool:
        results = pool.analyze_all(documents, expected_name=args.name)
    _emit(
        [
            {"file": str(path), **analysis_to_dict(result)}
            for path, result in zip(args.files, results)
        ]
    )
    return 0


def run_verify(args: argparse.Namespace, settings: Settings) -> int:
    service = VerificationService(VerifiedCertificatesRepository())
    if args.code and args.file:
        result = service.verify_by_code_and_file(args.code, args.file.read_bytes())
    elif args.file:
        result = service.verify_by_file(args.file.read_bytes())
    else:
        result = service.verify_by_code(args.code)
    _emit(result.to_dict())
    return 0 if result.status == "valid" else 1


def run_submit(args: argparse.Namespace, settings: Settings) -> int:
    processor = build_submission_processor(settings)
    result = processor.process(
        SubmissionRequest(
            student_id=args.student_id,
            certificate_code=args.code,
            title=args.title,
            issuing_organization=args.organization,
            issue_date=args.issue_date,
            description=args.description,
            document=load_document(args.file),
            expected_name=args.name,
        )
    )
    _emit(
        {
            "submission_id": result.submission_id,
            "validation_status": result.validation_status,
            "file_url": result.file_url,
            **analysis_to_dict(result.analysis),
        }
    )
    return 0


def run_stats(args: argparse.Namespace, settings: Settings) -> int:
    _emit(asdict(SubmissionsRepository().get_stats()))
    return 0


def run_register(args: argparse.Namespace, settings: Settings) -> int:
    record = VerifiedCertificatesRepository().add(
        VerifiedCertificateRecord(
            certificate_code=args.code,
            issuing_organization=args.organization,
            file_hash=content_hash(args.file.read_bytes()),
            added_by=args.added_by,
        )
    )
    _emit(asdict(record))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="certguard", description="Certificate fraud detection and verification"
    )
    commands = parser.add_subparsers(dest="command", required=True)

    analyze = commands.add_parser("analyze", help="Run forensic analysis on certificate files")
    analyze.add_argument("files", nargs="+", type=Path)
    analyze.add_argument("--name", help="Expected name of the certificate holder")

    verify = commands.add_parser("verify", help="Look a certificate up in the registry")
    verify.add_argument("--code", help="Certificate code")
    verify.add_argument("--file", type=Path, help="Certificate file")

    submit = commands.add_parser("submit", help="Submit a certificate for validation")
    submit.add_argument("file", type=Path)
    submit.add_argument("--student-id", required=True)
    submit.add_argument("--code", required=True)
    submit.add_argument("--title", required=True)
    submit.add_argument("--organization", required=True)
    submit.add_argument("--issue-date", required=True, type=date.fromisoformat)
    submit.add_argument("--description")
    submit.add_argument("--name", help="Expected name of the certificate holder")

    commands.add_parser("stats", help="Print aggregate submission statistics")

    register = commands.add_parser("register", help="Add a genuine certificate to the registry")
    register.add_argument("file", type=Path)
    register.add_argument("--code", required=True)
    register.add_argument("--organization", required=True)
    register.add_argument("--added-by")
    return parser


DATABASE_COMMANDS: dict[str, Callable[[argparse.Namespace, Settings], int]] = {
    "verify": run_verify,
    "submit": run_submit,
    "stats": run_stats,
    "register": run_register,
}


def main(argv: list[str] | None = None) -> int:
    """Entry point: parse arguments -> load settings -> run one command."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command == "verify" and not (args.code or args.file):
        parser.error("verify needs --code, --file or both")

    settings = Settings()
    Log.configure(settings.log_level)

    if args.command == "analyze":
        return run_analyze(args, settings)

    init_pool(settings)
    try:
        return DATABASE_COMMANDS[args.command](args, settings)
    finally:
        close_pool()


if __name__ == "__main__":
    raise SystemExit(main())
