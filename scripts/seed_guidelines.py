from __future__ import annotations

import argparse
import asyncio
import sys
from dataclasses import dataclass

from sqlalchemy import select

from safepost.domain.models import Guideline
from safepost.persistence.db import SessionLocal, engine
from safepost.persistence.repos import guidelines as guidelines_repo


NATIONAL_LAW = "Health Practitioner Regulation National Law"
ADVERTISING_GUIDELINES = "Guidelines for advertising a regulated health service"


@dataclass(frozen=True)
class SeedGuideline:
    id: str
    category: str
    subcategory: str
    source_document: str
    section_reference: str
    rule_text: str
    plain_english_summary: str
    recommended_action: str


def build_seed_guidelines() -> tuple[SeedGuideline, ...]:
    # Stable ids keep re-runs idempotent and citations comparable across environments.
    return (
        SeedGuideline(
            id="misleading-claims",
            category="Misleading or deceptive advertising",
            subcategory="False or misleading claims",
            source_document=NATIONAL_LAW,
            section_reference="s133(1)(a)",
            rule_text=(
                "A person must not advertise a regulated health service in a way that is false, "
                "misleading or deceptive, or is likely to be misleading or deceptive."
            ),
            plain_english_summary="Do not say anything that could mislead patients about a service.",
            recommended_action="Remove or qualify any statement you cannot support with evidence.",
        ),
        SeedGuideline(
            id="guaranteed-outcomes",
            category="Misleading or deceptive advertising",
            subcategory="Guarantees and absolute claims",
            source_document=ADVERTISING_GUIDELINES,
            section_reference="Section 4.1.3",
            rule_text=(
                "Advertising must not create an unreasonable expectation of beneficial treatment, "
                "including by guaranteeing outcomes or using absolute terms such as 'guaranteed', "
                "'pain-free', 'permanent' or 'every time'."
            ),
            plain_english_summary="Never promise results; treatment outcomes vary between patients.",
            recommended_action="Replace absolute claims with balanced wording and note that results vary.",
        ),
        SeedGuideline(
            id="gifts-inducements",
            category="Inducements",
            subcategory="Gifts, discounts and offers",
            source_document=NATIONAL_LAW,
            section_reference="s133(1)(b)",
            rule_text=(
                "Advertising must not offer a gift, discount or other inducement to attract a person "
                "to use the service unless the terms and conditions of the offer are also stated."
            ),
            plain_english_summary="Offers need their full terms and conditions stated alongside them.",
            recommended_action="State all terms and conditions of any offer, or remove the offer.",
        ),
        SeedGuideline(
            id="testimonials",
            category="Testimonials",
            subcategory="Clinical testimonials",
            source_document=NATIONAL_LAW,
            section_reference="s133(1)(c)",
            rule_text=(
                "Advertising must not use testimonials or purported testimonials about the service "
                "that relate to clinical aspects of care."
            ),
            plain_english_summary="Patient stories about clinical results cannot be used in advertising.",
            recommended_action="Remove clinical testimonials; non-clinical comments (e.g. parking) are acceptable.",
        ),
        SeedGuideline(
            id="unreasonable-expectation",
            category="Unreasonable expectations",
            subcategory="Creating unreasonable expectations",
            source_document=NATIONAL_LAW,
            section_reference="s133(1)(d)",
            rule_text="Advertising must not create an unreasonable expectation of beneficial treatment.",
            plain_english_summary="Do not overstate how much a treatment will help.",
            recommended_action="Describe benefits accurately and include risks where relevant.",
        ),
        SeedGuideline(
            id="indiscriminate-use",
            category="Unreasonable expectations",
            subcategory="Encouraging unnecessary use",
            source_document=NATIONAL_LAW,
            section_reference="s133(1)(e)",
            rule_text=(
                "Advertising must not directly or indirectly encourage the indiscriminate or "
                "unnecessary use of regulated health services."
            ),
            plain_english_summary="Do not push people to use services they may not need.",
            recommended_action="Avoid urgency and volume messaging such as 'book as many as you like'.",
        ),
        SeedGuideline(
            id="specialist-titles",
            category="Titles and claims",
            subcategory="Protected and specialist titles",
            source_document=ADVERTISING_GUIDELINES,
            section_reference="Section 4.4",
            rule_text=(
                "Advertising must not use titles that imply specialist registration or "
                "qualifications the practitioner does not hold."
            ),
            plain_english_summary="Only use titles you are registered to use.",
            recommended_action="Check titles against your registration and remove 'specialist' wording if not held.",
        ),
        SeedGuideline(
            id="evidence-claims",
            category="Titles and claims",
            subcategory="Scientific evidence",
            source_document=ADVERTISING_GUIDELINES,
            section_reference="Section 5",
            rule_text=(
                "Claims about the effectiveness of a treatment must be supported by acceptable "
                "scientific evidence."
            ),
            plain_english_summary="Back up treatment claims with good-quality evidence.",
            recommended_action="Cite acceptable evidence or remove the effectiveness claim.",
        ),
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Seed the guideline corpus with sample rules.")
    parser.add_argument(
        "--replace",
        action="store_true",
        help="Overwrite existing rows with the same id instead of skipping them",
    )
    return parser


async def seed_guidelines(*, replace: bool = False) -> int:
    guidelines = build_seed_guidelines()
    async with SessionLocal() as session:
        existing = await session.execute(select(Guideline.id))
        existing_ids = set(existing.scalars().all())
        inserted = 0
        updated = 0
        for seed in guidelines:
            if seed.id in existing_ids:
                if not replace:
                    continue
                row = await guidelines_repo.get_guideline(session, seed.id)
                for field, value in vars(seed).items():
                    setattr(row, field, value)
                updated += 1
                continue
            session.add(Guideline(**vars(seed)))
            inserted += 1
        await session.commit()
    print(f"Seeded guidelines: inserted={inserted} updated={updated} total={len(guidelines)}")
    return 0


async def _run(*, replace: bool) -> int:
    try:
        return await seed_guidelines(replace=replace)
    finally:
        await engine.dispose()


def main() -> int:
    args = _build_parser().parse_args()
    try:
        return asyncio.run(_run(replace=args.replace))
    except Exception as exc:  # noqa: BLE001 - surface any setup or DB errors
        print(f"seed_guidelines failed: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
