"""
Premium queries behind the four tools.

Each operation filters the premiums table on an exact rate profile,
groups the rows back to one entry per brand, year or search term (always
keeping the minimum premium), and renders a plain-text answer.
"""
import logging
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import and_, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

import insurers
from models import (
    FIRST_YEAR,
    LAST_YEAR,
    CheapestInsurersRequest,
    CompareInsurersRequest,
    Insurer,
    Location,
    Premium,
    PriceHistoryRequest,
    ProfileRequest,
)

logger = logging.getLogger(__name__)

DISCLAIMER = """
📋 DISCLAIMER:
This data comes from BAG Priminfo (Federal Office of Public Health) and is for information only.
For binding premiums, please contact the insurer directly or visit priminfo.admin.ch
"""

PREFETCH_LIMIT = 10
TOP_N = 5
# Rows sampled to estimate how many insurers have premiums. Not an exact count.
STATS_SAMPLE_SIZE = 1000
CANDIDATE_YEARS = range(FIRST_YEAR, LAST_YEAR + 1)


# === Aggregation ===

def aggregate_minimum(rows: Iterable[Premium], key: Callable[[Premium], object]) -> Dict[object, Premium]:
    """
    Group rows by key and keep the cheapest row per group.
    Ties keep the row seen first.
    """
    groups: Dict[object, Premium] = {}
    for row in rows:
        k = key(row)
        best = groups.get(k)
        if best is None or row.monthly_premium_chf < best.monthly_premium_chf:
            groups[k] = row
    return groups


# === Formatting helpers ===

def chf(amount: float) -> str:
    return f"CHF {amount:,.2f}".replace(",", "'")


def count(n: int) -> str:
    return f"{n:,}".replace(",", "'")


def profile_line(request: ProfileRequest, year: Optional[int] = None) -> str:
    parts = [request.canton]
    if year is not None:
        parts.append(str(year))
    parts += [
        request.age_band,
        f"CHF {request.franchise_chf} deductible",
        request.model_type,
        "with accident cover" if request.accident_covered else "without accident cover",
    ]
    return "📍 " + " | ".join(parts)


def not_found_hint() -> str:
    return "Known insurers: " + ", ".join(insurers.known_names())


def store_error(exc: SQLAlchemyError) -> str:
    detail = getattr(exc, "orig", None) or exc
    logger.warning("Premium store query failed: %s", detail)
    return f"❌ Error: {detail}\n" + DISCLAIMER


def profile_filters(request: ProfileRequest) -> List:
    return [
        Premium.canton == request.canton.upper(),
        Premium.age_band == request.age_band,
        Premium.franchise_chf == request.franchise_chf,
        Premium.model_type == request.model_type,
        Premium.accident_covered == request.accident_covered,
    ]


# === Operations ===

def get_cheapest_insurers(db: Session, request: CheapestInsurersRequest) -> str:
    """Top five cheapest brands for one profile and year."""
    logger.info("get_cheapest_insurers: %s", request.model_dump())

    try:
        rows = db.query(Premium).filter(
            and_(Premium.year == request.year, *profile_filters(request))
        ).order_by(Premium.monthly_premium_chf).limit(PREFETCH_LIMIT).all()
    except SQLAlchemyError as e:
        return store_error(e)

    if not rows:
        return (
            f"⚠️ No premiums found for: {request.canton}, {request.year}, {request.age_band}, "
            f"CHF {request.franchise_chf} deductible, {request.model_type}\n" + DISCLAIMER
        )

    cheapest = aggregate_minimum(rows, lambda p: insurers.name_of(p.insurer_id))
    ranked = sorted(cheapest.items(), key=lambda item: item[1].monthly_premium_chf)[:TOP_N]

    result = f"🏆 Top {len(ranked)} cheapest health insurers\n"
    result += profile_line(request, request.year) + "\n\n"
    for index, (name, premium) in enumerate(ranked, start=1):
        result += f"{index}. {name}: {chf(premium.monthly_premium_chf)}/month"
        if premium.tariff_name:
            result += f" ({premium.tariff_name})"
        result += "\n"

    return result + DISCLAIMER


def compare_insurers(db: Session, request: CompareInsurersRequest) -> str:
    """Cheapest premium per requested insurer, sorted by price."""
    logger.info("compare_insurers: %s", request.model_dump())

    resolved: Dict[str, set] = {}
    not_found: List[str] = []
    for search_name in request.insurer_names:
        codes = insurers.all_codes_for(search_name)
        if codes:
            resolved[search_name.strip()] = codes
        else:
            not_found.append(search_name)

    if not resolved:
        return (
            f"⚠️ None of these insurers were found: {', '.join(request.insurer_names)}\n"
            f"{not_found_hint()}\n" + DISCLAIMER
        )

    all_codes = set().union(*resolved.values())
    try:
        rows = db.query(Premium).filter(
            and_(
                Premium.year == request.year,
                Premium.insurer_id.in_(sorted(all_codes)),
                *profile_filters(request),
            )
        ).order_by(Premium.monthly_premium_chf).all()
    except SQLAlchemyError as e:
        return store_error(e)

    # A code may be claimed by several search names; each keeps its own minimum.
    groups: Dict[str, Premium] = {}
    for search_name, codes in resolved.items():
        best = aggregate_minimum((r for r in rows if r.insurer_id in codes), lambda p: search_name)
        if search_name in best:
            groups[search_name] = best[search_name]

    result = "📊 Insurer comparison\n"
    result += profile_line(request, request.year) + "\n\n"

    if not groups:
        result += "No premiums found for the requested insurers with this profile.\n"
    ranked: List[Tuple[str, Premium]] = sorted(groups.items(), key=lambda item: item[1].monthly_premium_chf)
    for index, (search_name, premium) in enumerate(ranked, start=1):
        display = insurers.name_of(premium.insurer_id)
        label = display if display.lower() == search_name.lower() else f"{search_name} ({display})"
        result += f"{index}. {label}: {chf(premium.monthly_premium_chf)}/month\n"

    if len(ranked) >= 2:
        spread = ranked[-1][1].monthly_premium_chf - ranked[0][1].monthly_premium_chf
        result += f"\n💰 Difference cheapest/most expensive: {chf(spread)}/month\n"

    if not_found:
        result += f"\n⚠️ Not found: {', '.join(not_found)}\n"

    return result + DISCLAIMER


def get_price_history(db: Session, request: PriceHistoryRequest) -> str:
    """Cheapest premium per year for one insurer, with the overall change."""
    logger.info("get_price_history: %s", request.model_dump())

    codes = insurers.all_codes_for(request.insurer_name)
    if not codes:
        return f"⚠️ Insurer \"{request.insurer_name}\" not found\n{not_found_hint()}\n" + DISCLAIMER

    display = insurers.name_of(insurers.primary_code_for(request.insurer_name) or min(codes))
    no_data = (
        f"❌ No data for {display} in {request.canton} "
        f"({request.start_year}-{request.end_year})\n" + DISCLAIMER
    )
    if request.start_year > request.end_year:
        return no_data

    try:
        rows = db.query(Premium).filter(
            and_(
                Premium.insurer_id.in_(sorted(codes)),
                Premium.year >= request.start_year,
                Premium.year <= request.end_year,
                *profile_filters(request),
            )
        ).order_by(Premium.year, Premium.monthly_premium_chf).all()
    except SQLAlchemyError as e:
        return store_error(e)

    if not rows:
        return no_data

    by_year = sorted(aggregate_minimum(rows, lambda p: p.year).items())

    result = f"📈 Price history: {display}\n"
    result += profile_line(request) + "\n\n"
    for year, premium in by_year:
        result += f"{year}: {chf(premium.monthly_premium_chf)}/month\n"

    if len(by_year) >= 2 and by_year[0][1].monthly_premium_chf:
        (first_year, first), (last_year, last) = by_year[0], by_year[-1]
        change = (last.monthly_premium_chf - first.monthly_premium_chf) / first.monthly_premium_chf * 100
        result += f"\n📊 Change {first_year}-{last_year}: {change:+.1f}%\n"

    return result + DISCLAIMER


def _count(query) -> int:
    return max(0, query.scalar() or 0)


def get_database_stats(db: Session) -> str:
    """Row counts, years with data and an estimated number of active insurers."""
    logger.info("get_database_stats")

    try:
        premiums = _count(db.query(func.count(Premium.id)))
        insurer_rows = _count(db.query(func.count(Insurer.id)))
        locations = _count(db.query(func.count(Location.id)))

        years = [
            year for year in CANDIDATE_YEARS
            if _count(db.query(func.count(Premium.id)).filter(Premium.year == year)) > 0
        ]

        sample = db.query(Premium.insurer_id).limit(STATS_SAMPLE_SIZE).all()
    except SQLAlchemyError as e:
        return store_error(e)

    sampled_insurers = len({insurers.normalize_code(row[0]) for row in sample})

    result = "📊 Database statistics\n\n"
    result += "📋 Tables:\n"
    result += f"   • premiums: {count(premiums)} rows\n"
    result += f"   • insurers: {count(insurer_rows)} insurers\n"
    result += f"   • locations: {count(locations)} postal code entries\n\n"
    result += f"🏥 Insurers with premiums: ~{sampled_insurers} (estimated from {count(len(sample))} sampled rows)\n"
    result += f"📅 Available years: {', '.join(str(y) for y in years) if years else 'none'}\n\n"
    result += "🔗 Source: BAG Priminfo (priminfo.admin.ch)\n"

    return result + DISCLAIMER
