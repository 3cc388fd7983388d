"""Tests for the premium queries, aggregation and formatting."""
from types import SimpleNamespace

import pytest
from sqlalchemy.exc import OperationalError

import queries
from models import (
    CheapestInsurersRequest,
    CompareInsurersRequest,
    Insurer,
    Location,
    PriceHistoryRequest,
)
from queries import (
    DISCLAIMER,
    aggregate_minimum,
    compare_insurers,
    get_cheapest_insurers,
    get_database_stats,
    get_price_history,
)


def cheapest_request(**overrides):
    values = dict(canton="zh", year=2025, age_band="adult", franchise_chf=300)
    values.update(overrides)
    return CheapestInsurersRequest(**values)


def compare_request(names, **overrides):
    values = dict(insurer_names=names, canton="ZH", year=2025, age_band="adult", franchise_chf=300)
    values.update(overrides)
    return CompareInsurersRequest(**values)


def history_request(name, **overrides):
    values = dict(insurer_name=name, canton="ZH", age_band="adult", franchise_chf=300)
    values.update(overrides)
    return PriceHistoryRequest(**values)


class BrokenSession:
    """Session stand-in whose queries fail like an unreachable store."""

    def query(self, *args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("connection refused"))


class TestAggregateMinimum:

    def test_keeps_minimum_not_sum_or_first(self):
        rows = [
            SimpleNamespace(insurer_id="0008", monthly_premium_chf=100.00),
            SimpleNamespace(insurer_id="1507", monthly_premium_chf=90.00),
        ]
        groups = aggregate_minimum(rows, lambda r: "CSS")
        assert list(groups) == ["CSS"]
        assert groups["CSS"].monthly_premium_chf == 90.00

    def test_tie_keeps_first_seen(self):
        first = SimpleNamespace(insurer_id="0008", monthly_premium_chf=90.0)
        second = SimpleNamespace(insurer_id="1507", monthly_premium_chf=90.0)
        groups = aggregate_minimum([first, second], lambda r: "CSS")
        assert groups["CSS"] is first


class TestCheapestInsurers:

    def test_ranks_distinct_brands(self, db, add_premium):
        add_premium("0008", 300.00, tariff_name="CSS Standard")
        add_premium("1507", 280.50)
        add_premium("1562", 310.00)
        add_premium("1384", 295.00)

        result = get_cheapest_insurers(db, cheapest_request())

        assert "1. CSS: CHF 280.50/month" in result
        assert "2. Swica: CHF 295.00/month" in result
        assert "3. Helsana: CHF 310.00/month" in result
        assert result.count("CSS:") == 1
        assert result.endswith(DISCLAIMER)

    def test_limits_to_five(self, db, add_premium):
        for index, code in enumerate(["0008", "1562", "1384", "1509", "0290", "1542", "0376"]):
            add_premium(code, 200.0 + index)

        result = get_cheapest_insurers(db, cheapest_request())

        assert "5. Concordia" in result
        assert "6." not in result

    def test_filters_on_exact_profile(self, db, add_premium):
        add_premium("0008", 100.0, franchise_chf=2500)
        add_premium("0008", 120.0, model_type="hmo")
        add_premium("0008", 130.0, accident_covered=False)
        add_premium("0008", 140.0, canton="BE")
        add_premium("1562", 300.0)

        result = get_cheapest_insurers(db, cheapest_request())

        assert "1. Helsana: CHF 300.00/month" in result
        assert "CSS" not in result

    def test_optional_model_and_accident(self, db, add_premium):
        add_premium("0008", 250.0, model_type="hmo", accident_covered=False)

        result = get_cheapest_insurers(db, cheapest_request(model_type="hmo", accident_covered=False))

        assert "1. CSS: CHF 250.00/month" in result

    def test_no_rows_echoes_profile(self, db):
        result = get_cheapest_insurers(db, cheapest_request(canton="GE", franchise_chf=1500))

        assert result.startswith("⚠️ No premiums found")
        assert "GE" in result
        assert "2025" in result
        assert "adult" in result
        assert "CHF 1500" in result
        assert "standard" in result
        assert "1." not in result

    def test_only_the_cheapest_ten_rows_are_fetched(self, db, add_premium):
        for index in range(10):
            add_premium("0008", 100.0 + index)
        add_premium("1562", 200.0)

        result = get_cheapest_insurers(db, cheapest_request())

        assert "1. CSS: CHF 100.00/month" in result
        assert "Helsana" not in result

    def test_year_without_data_echoes_profile(self, db, add_premium):
        add_premium("0008", 300.0)

        result = get_cheapest_insurers(db, cheapest_request(year=2027))

        assert result.startswith("⚠️ No premiums found for: ZH, 2027")

    def test_store_error_is_reported_as_text(self):
        result = get_cheapest_insurers(BrokenSession(), cheapest_request())

        assert result.startswith("❌ Error:")
        assert "connection refused" in result


class TestCompareInsurers:

    def test_groups_by_search_name_with_minimum(self, db, add_premium):
        add_premium("0008", 320.00)
        add_premium("1507", 305.00)
        add_premium("1562", 330.00)
        add_premium("1568", 340.00)
        add_premium("1384", 999.00, year=2024)

        result = compare_insurers(db, compare_request(["CSS", "Helsana"]))

        assert "1. CSS: CHF 305.00/month" in result
        assert "2. Helsana: CHF 330.00/month" in result
        assert "Difference cheapest/most expensive: CHF 25.00/month" in result
        assert result.endswith(DISCLAIMER)

    def test_unresolvable_name_is_reported_without_failing(self, db, add_premium):
        add_premium("0008", 320.00)

        result = compare_insurers(db, compare_request(["CSS", "Nonexistent Kasse"]))

        assert "1. CSS: CHF 320.00/month" in result
        assert "Not found: Nonexistent Kasse" in result
        assert "Difference" not in result

    def test_nothing_resolves(self, db):
        result = compare_insurers(db, compare_request(["Nonexistent Kasse"]))

        assert "None of these insurers were found" in result
        assert "Known insurers:" in result

    def test_resolved_names_without_premiums(self, db):
        result = compare_insurers(db, compare_request(["CSS"]))

        assert "No premiums found for the requested insurers" in result

    def test_search_name_differs_from_display_name(self, db, add_premium):
        add_premium("0360", 280.00)

        result = compare_insurers(db, compare_request(["hinterland"]))

        assert "1. hinterland (Luzerner Hinterland): CHF 280.00/month" in result

    def test_year_without_data(self, db, add_premium):
        add_premium("0008", 320.00)

        result = compare_insurers(db, compare_request(["CSS"], year=2027))

        assert "No premiums found for the requested insurers" in result
        assert "2027" in result

    def test_store_error_is_reported_as_text(self):
        result = compare_insurers(BrokenSession(), compare_request(["CSS", "Helsana"]))

        assert result.startswith("❌ Error: connection refused")
        assert result.endswith(DISCLAIMER)


class TestPriceHistory:

    def test_minimum_per_year_and_change(self, db, add_premium):
        add_premium("0008", 300.00, year=2020)
        add_premium("1507", 290.00, year=2020)
        add_premium("0008", 310.00, year=2021)
        add_premium("0008", 319.00, year=2022)

        result = get_price_history(db, history_request("CSS", start_year=2020, end_year=2022))

        assert result.index("2020: CHF 290.00/month") < result.index("2021: CHF 310.00/month")
        assert "2022: CHF 319.00/month" in result
        assert "Change 2020-2022: +10.0%" in result
        assert result.endswith(DISCLAIMER)

    def test_range_is_inclusive_and_bounded(self, db, add_premium):
        add_premium("1562", 250.00, year=2018)
        add_premium("1562", 260.00, year=2019)
        add_premium("1562", 270.00, year=2020)

        result = get_price_history(db, history_request("Helsana", start_year=2019, end_year=2019))

        assert "2019: CHF 260.00/month" in result
        assert "2018" not in result.split("\n\n")[1]
        assert "Change" not in result

    def test_start_after_end_is_not_found(self, db, add_premium):
        add_premium("0008", 300.00, year=2020)

        result = get_price_history(db, history_request("CSS", start_year=2022, end_year=2020))

        assert result.startswith("❌ No data for CSS")

    def test_empty_range_is_not_found(self, db):
        result = get_price_history(db, history_request("CSS"))

        assert result.startswith("❌ No data for CSS in ZH")

    def test_zero_first_premium_skips_change(self, db, add_premium):
        add_premium("0008", 0.0, year=2020)
        add_premium("0008", 10.0, year=2021)

        result = get_price_history(db, history_request("CSS", start_year=2020, end_year=2021))

        assert "2020: CHF 0.00/month" in result
        assert "2021: CHF 10.00/month" in result
        assert "Change" not in result

    def test_store_error_is_reported_as_text(self):
        result = get_price_history(BrokenSession(), history_request("CSS"))

        assert result.startswith("❌ Error: connection refused")
        assert result.endswith(DISCLAIMER)

    def test_unknown_insurer(self, db):
        result = get_price_history(db, history_request("Nonexistent Kasse"))

        assert 'Insurer "Nonexistent Kasse" not found' in result
        assert "Known insurers:" in result


class TestDatabaseStats:

    def test_counts_and_years(self, db, add_premium):
        add_premium("0008", 300.0, year=2016)
        add_premium("1507", 300.0, year=2016)
        add_premium("1562", 300.0, year=2025)
        add_premium("1562", 300.0, year=2030)
        db.add_all([Insurer(insurer_id="0008", name="CSS"), Location(postal_code="8001", canton="ZH")])
        db.commit()

        result = get_database_stats(db)

        assert "premiums: 4 rows" in result
        assert "insurers: 1 insurers" in result
        assert "locations: 1 postal code entries" in result
        assert "Available years: 2016, 2025\n" in result
        assert "2030" not in result
        assert "~3" in result

    def test_empty_store(self, db):
        result = get_database_stats(db)

        assert "premiums: 0 rows" in result
        assert "Available years: none" in result

    def test_sample_is_bounded(self, db, add_premium, monkeypatch):
        monkeypatch.setattr(queries, "STATS_SAMPLE_SIZE", 2)
        for code in ["0008", "1562", "1384"]:
            add_premium(code, 300.0)

        result = get_database_stats(db)

        assert "estimated from 2 sampled rows" in result

    def test_store_error(self):
        assert get_database_stats(BrokenSession()).startswith("❌ Error:")


class TestFormatting:

    @pytest.mark.parametrize("amount, expected", [
        (312.4, "CHF 312.40"),
        (1234.5, "CHF 1'234.50"),
    ])
    def test_chf(self, amount, expected):
        assert queries.chf(amount) == expected

    def test_count_uses_swiss_grouping(self):
        assert queries.count(1234567) == "1'234'567"
