"""
Тесты Synergy Recalculator

Coverage:
- активация при полном покрытии индустрий
- unlock_level гейт
- деактивация при удалении компании
- идемпотентность пересчёта (activated_at сохраняется)
- масштабирование только PERCENTAGE бонусов
- агрегация бонусов, apply_bonus_to_value, сводка
- потенциальные синергии
"""

from datetime import datetime, timedelta, timezone

import pytest

from empire_engine.core.domain import Empire, SynergyBonusTarget, SynergyBonusType, SynergyDefinition
from empire_engine.synergy import SynergyCatalog, SynergyRecalculator


NOW = datetime(2026, 1, 15, tzinfo=timezone.utc)


def _empire(*members, level=1, multiplier=1.0):
    """Империя с участниками (company_id, industry)."""
    empire = Empire(player_id="p1", created_at=NOW)
    for company_id, industry in members:
        empire.add_company(company_id, company_id, industry, revenue=10_000, value=50_000, now=NOW)
    empire.level = level
    empire.synergy_multiplier = multiplier
    return empire


@pytest.fixture
def recalculator():
    return SynergyRecalculator()


@pytest.fixture
def small_catalog():
    return SynergyCatalog(
        [
            SynergyDefinition(
                synergy_id="property-mogul",
                name="Property Mogul",
                required_industries=["Banking", "RealEstate"],
                tier="basic",
                bonuses=[
                    {"type": "percentage", "target": "revenue", "value": 12, "description": "+12% revenue"},
                    {"type": "flat", "target": "revenue", "value": 5_000, "description": "+$5,000/month"},
                ],
            ),
            SynergyDefinition(
                synergy_id="distribution-hub",
                name="Distribution Hub",
                required_industries=["RealEstate", "Logistics"],
                tier="basic",
                unlock_level=2,
                bonuses=[
                    {"type": "efficiency", "target": "production_speed", "value": 10, "description": "+10% speed"},
                    {"type": "unlock", "target": "feature_unlock", "value": 1, "description": "Regional warehouses"},
                ],
            ),
            SynergyDefinition(
                synergy_id="retired",
                name="Retired",
                required_industries=["Banking"],
                tier="basic",
                is_active=False,
            ),
        ]
    )


class TestRecalculate:
    """Пересчёт активных синергий."""

    def test_no_synergy_with_single_industry(self, recalculator):
        empire = _empire(("C1", "Banking"))
        result = recalculator.recalculate(empire, NOW)
        assert empire.active_synergies == []
        assert not result.changed
        assert empire.last_recalculated_at == NOW

    def test_activates_when_industries_present(self, recalculator):
        empire = _empire(("C1", "Banking"), ("C2", "RealEstate"), ("C3", "Tech"))
        result = recalculator.recalculate(empire, NOW)

        active_ids = [s.synergy_id for s in empire.active_synergies]
        assert "property-mogul" in active_ids
        assert "fintech-empire" in active_ids
        assert set(result.activated_ids) == set(active_ids)

        mogul = next(s for s in empire.active_synergies if s.synergy_id == "property-mogul")
        assert mogul.contributing_company_ids == ("C1", "C2")
        assert mogul.activated_at == NOW

    def test_unlock_level_gate(self, recalculator):
        """data-goldmine требует уровень 3."""
        members = (("C1", "Banking"), ("C2", "Tech"), ("C3", "Media"))

        low = _empire(*members, level=2)
        recalculator.recalculate(low, NOW)
        assert "data-goldmine" not in [s.synergy_id for s in low.active_synergies]

        high = _empire(*members, level=3)
        recalculator.recalculate(high, NOW)
        assert "data-goldmine" in [s.synergy_id for s in high.active_synergies]

    def test_deactivates_on_removal(self, recalculator):
        empire = _empire(("C1", "Banking"), ("C2", "RealEstate"))
        recalculator.recalculate(empire, NOW)

        empire.remove_company("C2")
        result = recalculator.recalculate(empire, NOW + timedelta(days=1))

        assert empire.active_synergies == []
        assert result.deactivated_ids == ("property-mogul",)

    def test_idempotent(self, recalculator):
        empire = _empire(("C1", "Banking"), ("C2", "RealEstate"), ("C3", "Media"))
        recalculator.recalculate(empire, NOW)
        first = list(empire.active_synergies)

        result = recalculator.recalculate(empire, NOW + timedelta(hours=5))

        assert empire.active_synergies == first
        assert not result.changed

    def test_inactive_definitions_ignored(self, small_catalog):
        recalculator = SynergyRecalculator(catalog=small_catalog)
        empire = _empire(("C1", "Banking"))
        recalculator.recalculate(empire, NOW)
        assert empire.active_synergies == []

    def test_evaluate_is_pure(self, recalculator):
        empire = _empire(("C1", "Banking"), ("C2", "RealEstate"))
        active = recalculator.evaluate(empire, NOW)
        assert active
        assert empire.active_synergies == []


class TestBonusScaling:
    """Только PERCENTAGE масштабируется множителем уровня."""

    def test_percentage_scaled_flat_not(self, small_catalog):
        recalculator = SynergyRecalculator(catalog=small_catalog)
        empire = _empire(("C1", "Banking"), ("C2", "RealEstate"), multiplier=1.5)
        recalculator.recalculate(empire, NOW)

        bonuses = {b.bonus_type: b for b in empire.active_synergies[0].bonuses}
        percentage = bonuses[SynergyBonusType.PERCENTAGE]
        flat = bonuses[SynergyBonusType.FLAT]

        assert percentage.multiplier == 1.5
        assert percentage.final_value == pytest.approx(18.0)
        assert flat.multiplier == 1.0
        assert flat.final_value == 5_000


class TestAggregation:
    """Агрегация бонусов."""

    def test_apply_bonus_to_value(self, small_catalog):
        recalculator = SynergyRecalculator(catalog=small_catalog)
        empire = _empire(("C1", "Banking"), ("C2", "RealEstate"))
        recalculator.recalculate(empire, NOW)

        # 100_000 * 1.12 + 5_000
        assert recalculator.apply_bonus_to_value(
            empire, 100_000, SynergyBonusTarget.REVENUE
        ) == pytest.approx(117_000)

    def test_bonus_for_target(self, small_catalog):
        recalculator = SynergyRecalculator(catalog=small_catalog)
        empire = _empire(("C1", "Banking"), ("C2", "RealEstate"))
        recalculator.recalculate(empire, NOW)

        bonus = recalculator.bonus_for_target(empire, SynergyBonusTarget.REVENUE)
        assert bonus.percentage == pytest.approx(12)
        assert bonus.flat == 5_000
        assert bonus.synergy_names == ("Property Mogul",)

    def test_bonuses_by_target_and_unlocks(self, small_catalog):
        recalculator = SynergyRecalculator(catalog=small_catalog)
        empire = _empire(("C1", "RealEstate"), ("C2", "Logistics"), level=2)
        recalculator.recalculate(empire, NOW)

        by_target = recalculator.bonuses_by_target(empire)
        assert by_target[SynergyBonusTarget.PRODUCTION_SPEED] == pytest.approx(10)
        assert by_target[SynergyBonusTarget.REVENUE] == 0
        assert recalculator.unlocked_features(empire) == ["Regional warehouses"]

    def test_bonus_summary(self, recalculator):
        empire = _empire(("C1", "Banking"), ("C2", "RealEstate"), ("C3", "Tech"))
        recalculator.recalculate(empire, NOW)

        summary = recalculator.bonus_summary(empire)
        assert summary.active_synergies == len(empire.active_synergies)
        assert summary.total_revenue_bonus == pytest.approx(12)
        assert summary.total_cost_reduction == pytest.approx(15)
        assert summary.total_efficiency_bonus == pytest.approx(20)
        assert summary.projected_monthly_revenue == pytest.approx(30_000 * 1.12)
        assert len(summary.top_synergies) <= 3
        totals = [total for _, total in summary.top_synergies]
        assert totals == sorted(totals, reverse=True)


class TestPotentialSynergies:
    """Синергии, которые можно открыть."""

    def test_sorted_by_completion(self, recalculator):
        empire = _empire(("C1", "Banking"), ("C2", "Tech"))
        potential = recalculator.find_potential_synergies(empire)

        completions = [p.percent_complete for p in potential]
        assert completions == sorted(completions, reverse=True)
        assert all(p.missing_industries for p in potential)
        assert "fintech-empire" not in [p.synergy_id for p in potential]

    def test_level_horizon(self, recalculator):
        """На уровне 1 синергии с unlock_level > 6 не показываются."""
        empire = _empire(("C1", "Banking"))
        ids = [p.synergy_id for p in recalculator.find_potential_synergies(empire)]

        assert "economic-titan" not in ids
        assert "total-monopoly" not in ids
        assert "media-empire" in ids

    def test_percent_complete_and_estimate(self, small_catalog):
        recalculator = SynergyRecalculator(catalog=small_catalog)
        empire = _empire(("C1", "Banking"))
        potential = recalculator.find_potential_synergies(empire)

        mogul = next(p for p in potential if p.synergy_id == "property-mogul")
        assert mogul.percent_complete == pytest.approx(50.0)
        assert mogul.estimated_bonus == pytest.approx(12)
        assert [i.value for i in mogul.missing_industries] == ["RealEstate"]
