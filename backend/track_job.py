#!/usr/bin/env python3
"""Submit an upload or batch send to the payroll API and follow the job until it finishes.

Examples:
    python track_job.py employees staff.xlsx --token $TOKEN
    python track_job.py payslips march.zip --pay-month 2025-03 --token $TOKEN
    python track_job.py send 6f1c0d4e-... --token $TOKEN
"""

import argparse
import asyncio
import mimetypes
import sys
from pathlib import Path

import httpx

from payslip_portal.core.config import Settings, get_settings
from payslip_portal.core.errors import JobFailed, SubmissionError
from payslip_portal.jobs.kinds import (
    BATCH_EMAIL_SEND,
    EMPLOYEE_BULK_UPLOAD,
    PAYSLIP_BATCH_UPLOAD,
    UNKNOWN_FAILURE,
)
from payslip_portal.jobs.models import BatchSendPayload, Job, JobState, UploadPayload
from payslip_portal.jobs.poller import start_tracking
from payslip_portal.jobs.progress import project
from payslip_portal.jobs.reconciliation import Reconciler
from payslip_portal.jobs.submission import submit
from payslip_portal.services.api_client import PayrollApiClient

KINDS = {
    "employees": EMPLOYEE_BULK_UPLOAD,
    "payslips": PAYSLIP_BATCH_UPLOAD,
    "send": BATCH_EMAIL_SEND,
}


def non_negative_int(value: str) -> int:
    number = int(value)
    if number < 0:
        raise argparse.ArgumentTypeError(f"must be 0 or more, got {number}")
    return number


def poll_interval(args: argparse.Namespace, settings: Settings) -> int:
    """--interval wins when given, including 0 (poll back to back)."""
    if args.interval is not None:
        return args.interval
    return settings.poll_interval_ms


def build_payload(args: argparse.Namespace):
    if args.kind == "send":
        return BatchSendPayload(batch_id=args.target)
    path = Path(args.target)
    if not path.is_file():
        sys.exit(f"File not found: {path}")
    content_type, _ = mimetypes.guess_type(path.name)
    return UploadPayload(
        filename=path.name,
        content=path.read_bytes(),
        content_type=content_type,
        pay_month=args.pay_month,
    )


async def run(args: argparse.Namespace) -> int:
    settings = get_settings()
    kind = KINDS[args.kind]
    reconciler = Reconciler()
    outcome: list[Job] = []

    def on_update(job: Job) -> None:
        view = project(job)
        detail = f" ({view.detail_text})" if view.detail_text else ""
        print(f"[{job.state.value:>10}] {view.percentage:3d}%{detail}")
        if job.is_terminal:
            notice = reconciler.reconcile(job, kind)
            if notice and job.state is JobState.COMPLETED:
                print(f"\n{notice.message}")
            outcome.append(job)

    async with httpx.AsyncClient(timeout=settings.api_timeout_seconds) as http:
        client = PayrollApiClient(http, args.base_url or settings.api_base_url, args.token)
        try:
            receipt = await submit(kind, build_payload(args), client=client, settings=settings)
        except SubmissionError as exc:
            print(f"Submission rejected: {exc.message}")
            return 1

        print(f"{receipt.message} (job {receipt.job_id})")

        poller = start_tracking(
            receipt.job_id,
            lambda job_id: kind.check_status(client, job_id),
            on_update,
            poll_interval(args, settings),
            max_polls=settings.poll_max_attempts,
            kind=kind.name,
        )
        try:
            await poller.wait()
        finally:
            poller.cancel()

    if not outcome:
        return 1
    job = outcome[-1]
    if job.state is JobState.FAILED:
        raise JobFailed(job.job_id, job.failed_reason or UNKNOWN_FAILURE)
    if job.result is not None:
        print(job.result.model_dump_json(indent=2, by_alias=True))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("kind", choices=sorted(KINDS))
    parser.add_argument("target", help="File to upload, or batch id for 'send'")
    parser.add_argument("--pay-month", help="YYYY-MM, required for payslip uploads")
    parser.add_argument("--token", help="Bearer token for the payroll API")
    parser.add_argument("--base-url", help="Override API_BASE_URL")
    parser.add_argument(
        "--interval", type=non_negative_int, help="Poll interval in milliseconds"
    )
    return parser


def main() -> None:
    args = build_parser().parse_args()
    try:
        sys.exit(asyncio.run(run(args)))
    except JobFailed as exc:
        print(f"\nJob {exc.job_id} failed: {exc.reason}")
        sys.exit(1)
    except KeyboardInterrupt:
        print("\nStopped tracking.")
        sys.exit(130)


if __name__ == "__main__":
    main()
