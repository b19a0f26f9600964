from __future__ import annotations

import argparse
import asyncio
import json
import sys

from safepost.core.errors import (
    ContentOutOfScope,
    ContractViolation,
    EmptyCorpus,
    EngineContractViolation,
    EngineTimeout,
    EngineUnavailable,
    InvalidInput,
    ProviderConfigError,
    SafePostError,
)
from safepost.core.logging import configure_logging
from safepost.domain.types import ContentType
from safepost.persistence.db import engine
from safepost.providers.llm.factory import get_llm_provider
from safepost.services.analysis.engine import ComplianceEngineClient
from safepost.services.analysis.request_builder import build_request
from safepost.services.analysis.rewrites import RewriteGenerator
from safepost.services.guidelines import get_guideline_store


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Check one piece of content against the guideline corpus without saving it."
    )
    parser.add_argument("--content", required=True, help="Advertising text to check")
    parser.add_argument(
        "--content-type",
        default=ContentType.SOCIAL_MEDIA_POST.value,
        choices=[item.value for item in ContentType],
    )
    parser.add_argument("--platform", default=None, help="Target platform, e.g. instagram")
    parser.add_argument("--rewrites", action="store_true", help="Also request compliant rewrites")
    return parser


def _format_error(exc: Exception) -> tuple[int, str]:
    # Map known failures to stable, actionable messages and exit codes.
    if isinstance(exc, ProviderConfigError):
        return 2, f"PROVIDER_CONFIG_ERROR: {exc}"
    if isinstance(exc, (InvalidInput, ContentOutOfScope)):
        return 2, f"{exc.code}: {exc}"
    if isinstance(exc, EmptyCorpus):
        return 3, f"EMPTY_CORPUS: {exc} (run scripts/seed_guidelines.py)"
    if isinstance(exc, (EngineTimeout, EngineUnavailable)):
        return 4, f"{exc.code}: {exc}"
    if isinstance(exc, (EngineContractViolation, ContractViolation)):
        return 5, f"{exc.code}: {exc}"
    if isinstance(exc, SafePostError):
        return 1, f"{exc.code}: {exc}"
    return 1, f"UNKNOWN_ERROR: {exc}"


async def _run(args: argparse.Namespace) -> int:
    provider = get_llm_provider()
    try:
        corpus = await get_guideline_store().get_corpus()
        request = build_request(args.content, args.content_type, args.platform, corpus)
        result = await ComplianceEngineClient(provider).analyze(request)
        output = {"result": result.to_dict(), "display": result.display_view()}
        if args.rewrites and result.issues:
            rewrites = await RewriteGenerator(provider).generate_rewrites(request.content, result.display_issues)
            output["rewrites"] = rewrites.to_list()
    finally:
        # Close pooled connections before the event loop goes away.
        await engine.dispose()
    print(json.dumps(output, indent=2, ensure_ascii=False))
    return 0


def main() -> int:
    configure_logging()
    args = _build_parser().parse_args()
    try:
        return asyncio.run(_run(args))
    except Exception as exc:  # noqa: BLE001 - surface actionable errors
        code, message = _format_error(exc)
        print(message, file=sys.stderr)
        return code


if __name__ == "__main__":
    raise SystemExit(main())
