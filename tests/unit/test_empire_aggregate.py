"""
Тесты агрегата Empire (структурные операции и recompute)

Coverage:
- add_company: дубликаты, штаб-квартира, итоги
- remove_company: переназначение штаб-квартиры, единственный участник
- update_company_stats: частичное обновление
- set_headquarters: ровно одна штаб-квартира
- recalculate_aggregates: идемпотентность, multiplier по текущему уровню
- property checks на случайных последовательностях add/remove
"""

import random
from datetime import datetime, timezone

import pytest

from empire_engine.core.domain import Empire, EmpireIndustry
from empire_engine.core.errors import DuplicateMemberError, InvalidArgumentError, NotFoundError


NOW = datetime(2026, 1, 15, tzinfo=timezone.utc)


@pytest.fixture
def empire():
    return Empire(player_id="p1", created_at=NOW)


def _headquarters_count(empire):
    return sum(1 for company in empire.companies if company.is_headquarters)


class TestAddCompany:
    """Добавление компании."""

    def test_first_company_scenario(self, empire):
        """Пустая империя + Acme Bank."""
        company = empire.add_company("C1", "Acme Bank", "Banking", 1, 100_000, 500_000, now=NOW)

        assert empire.industry_count == 1
        assert empire.total_value == 500_000
        assert empire.monthly_revenue == 100_000
        assert company.is_headquarters
        assert empire.headquarters.company_id == "C1"

    def test_second_company_not_headquarters(self, empire):
        empire.add_company("C1", "Acme Bank", "Banking", now=NOW)
        second = empire.add_company("C2", "Acme Tower", "RealEstate", value=200_000, now=NOW)

        assert not second.is_headquarters
        assert _headquarters_count(empire) == 1
        assert empire.industry_count == 2

    def test_duplicate_rejected(self, empire):
        empire.add_company("C1", "Acme Bank", "Banking", now=NOW)
        with pytest.raises(DuplicateMemberError):
            empire.add_company("C1", "Acme Bank 2", "Tech", now=NOW)
        assert len(empire.companies) == 1

    def test_unknown_industry_rejected(self, empire):
        with pytest.raises(InvalidArgumentError):
            empire.add_company("C1", "Pirates", "Piracy", now=NOW)
        assert empire.companies == []

    def test_negative_revenue_rejected(self, empire):
        with pytest.raises(InvalidArgumentError):
            empire.add_company("C1", "Acme", "Tech", revenue=-5, now=NOW)

    def test_expenses_summed(self, empire):
        empire.add_company("C1", "A", "Tech", revenue=10_000, expenses=4_000, now=NOW)
        empire.add_company("C2", "B", "Media", revenue=5_000, expenses=1_000, now=NOW)
        assert empire.monthly_expenses == 5_000
        assert empire.get_stats().monthly_passive_income == 10_000


class TestRemoveCompany:
    """Удаление компании."""

    def test_sole_headquarters_removed(self, empire):
        empire.add_company("C1", "Acme Bank", "Banking", value=500_000, now=NOW)
        empire.remove_company("C1")

        assert empire.companies == []
        assert empire.headquarters is None
        assert empire.total_value == 0
        assert empire.industry_count == 0

    def test_headquarters_reassigned_to_first_remaining(self, empire):
        empire.add_company("C1", "A", "Banking", now=NOW)
        empire.add_company("C2", "B", "Tech", now=NOW)
        empire.add_company("C3", "C", "Media", now=NOW)

        empire.remove_company("C1")

        assert empire.headquarters.company_id == "C2"
        assert _headquarters_count(empire) == 1

    def test_non_headquarters_removal_keeps_flag(self, empire):
        empire.add_company("C1", "A", "Banking", now=NOW)
        empire.add_company("C2", "B", "Tech", now=NOW)
        empire.remove_company("C2")
        assert empire.headquarters.company_id == "C1"

    def test_missing_company(self, empire):
        with pytest.raises(NotFoundError):
            empire.remove_company("nope")

    def test_level_not_demoted(self, empire):
        empire.add_company("C1", "A", "Banking", now=NOW)
        empire.level = 3
        empire.remove_company("C1")
        assert empire.level == 3


class TestUpdateAndHeadquarters:
    """Частичное обновление и штаб-квартира."""

    def test_partial_update(self, empire):
        empire.add_company("C1", "Acme", "Tech", level=1, revenue=100, value=1_000, now=NOW)
        updated = empire.update_company_stats("C1", value=5_000)

        assert updated.value == 5_000
        assert updated.revenue == 100
        assert updated.name == "Acme"
        assert updated.is_headquarters
        assert empire.total_value == 5_000

    def test_update_name_and_level(self, empire):
        empire.add_company("C1", "Acme", "Tech", now=NOW)
        updated = empire.update_company_stats("C1", name="Acme 2", level=4)
        assert updated.name == "Acme 2"
        assert updated.level == 4

    def test_update_invalid_value(self, empire):
        empire.add_company("C1", "Acme", "Tech", value=1_000, now=NOW)
        with pytest.raises(InvalidArgumentError):
            empire.update_company_stats("C1", value=-1)
        assert empire.find_company("C1").value == 1_000

    def test_update_missing(self, empire):
        with pytest.raises(NotFoundError):
            empire.update_company_stats("nope", value=1)

    def test_set_headquarters(self, empire):
        empire.add_company("C1", "A", "Banking", now=NOW)
        empire.add_company("C2", "B", "Tech", now=NOW)

        empire.set_headquarters("C2")

        assert empire.headquarters.company_id == "C2"
        assert _headquarters_count(empire) == 1

    def test_set_headquarters_missing(self, empire):
        empire.add_company("C1", "A", "Banking", now=NOW)
        with pytest.raises(NotFoundError):
            empire.set_headquarters("nope")
        assert empire.headquarters.company_id == "C1"


class TestRecalculateAggregates:
    """Recompute итогов."""

    def test_idempotent(self, empire):
        empire.add_company("C1", "A", "Banking", revenue=10, value=100, now=NOW)
        empire.add_company("C2", "B", "Banking", revenue=20, value=200, now=NOW)

        empire.recalculate_aggregates()
        first = empire.model_dump()
        empire.recalculate_aggregates()

        assert empire.model_dump() == first
        assert empire.industry_count == 1

    def test_multiplier_pinned_to_current_level(self, empire):
        empire.level = 4
        empire.xp = 0  # XP не участвует: уровень не пересчитывается
        empire.recalculate_aggregates()
        assert empire.synergy_multiplier == 1.15
        assert empire.level == 4

    def test_industries_in_first_appearance_order(self, empire):
        empire.add_company("C1", "A", "Tech", now=NOW)
        empire.add_company("C2", "B", "Banking", now=NOW)
        empire.add_company("C3", "C", "Tech", now=NOW)
        assert empire.get_industries() == [EmpireIndustry.TECH, EmpireIndustry.BANKING]

    def test_stats(self, empire):
        empire.add_company("C1", "A", "Tech", revenue=10, value=100, now=NOW)
        stats = empire.get_stats(resource_flows_count=2)

        assert stats.total_companies == 1
        assert stats.industries_covered == (EmpireIndustry.TECH,)
        assert stats.next_level_xp == 5_000
        assert stats.total_asset_value == 100
        assert stats.resource_flows_count == 2


class TestAggregateProperties:
    """Инварианты на случайных последовательностях add/remove."""

    @pytest.mark.parametrize("seed", range(5))
    def test_totals_and_headquarters(self, seed):
        rng = random.Random(seed)
        empire = Empire(player_id="p1")
        next_id = 0

        for _ in range(80):
            if empire.companies and rng.random() < 0.4:
                empire.remove_company(rng.choice(empire.companies).company_id)
            else:
                empire.add_company(
                    f"C{next_id}",
                    "Co",
                    rng.choice(list(EmpireIndustry)),
                    value=rng.randint(0, 1_000_000),
                    revenue=rng.randint(0, 100_000),
                    now=NOW,
                )
                next_id += 1

            assert empire.total_value == sum(c.value for c in empire.companies)
            assert empire.monthly_revenue == sum(c.revenue for c in empire.companies)
            assert empire.industry_count == len({c.industry for c in empire.companies})
            if empire.companies:
                assert _headquarters_count(empire) == 1
            else:
                assert _headquarters_count(empire) == 0
