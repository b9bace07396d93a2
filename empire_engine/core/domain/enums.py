"""
Enums — фиксированные перечисления домена империи.

- EmpireIndustry: индустрия компании (ключ синергий)
- SynergyTier: ранг синергии (упорядочен)
- SynergyBonusType / SynergyBonusTarget: тип и целевая метрика бонуса
- ResourceKind: вид ресурса в потоке
- FlowFrequency / FlowStatus: расписание и статус ресурсного потока
"""

from enum import Enum


# =============================================================================
# EMPIRE / SYNERGY ENUMS
# =============================================================================


class EmpireIndustry(str, Enum):
    """Индустрия компании"""

    BANKING = "Banking"
    TECH = "Tech"
    MEDIA = "Media"
    REAL_ESTATE = "RealEstate"
    ENERGY = "Energy"
    MANUFACTURING = "Manufacturing"
    HEALTHCARE = "Healthcare"
    LOGISTICS = "Logistics"
    POLITICS = "Politics"
    RETAIL = "Retail"
    CONSULTING = "Consulting"
    CRIME = "Crime"


class SynergyTier(str, Enum):
    """
    Ранг синергии.

    Порядок объявления = порядок ранга (BASIC < ADVANCED < ELITE < ULTIMATE).
    """

    BASIC = "basic"
    ADVANCED = "advanced"
    ELITE = "elite"
    ULTIMATE = "ultimate"

    @property
    def rank(self) -> int:
        return list(SynergyTier).index(self)


class SynergyBonusType(str, Enum):
    """Тип бонуса синергии"""

    PERCENTAGE = "percentage"
    FLAT = "flat"
    COST_REDUCTION = "cost_reduction"
    EFFICIENCY = "efficiency"
    UNLOCK = "unlock"


class SynergyBonusTarget(str, Enum):
    """Метрика, на которую действует бонус"""

    REVENUE = "revenue"
    ALL_PROFITS = "all_profits"
    OPERATING_COST = "operating_cost"
    PRODUCTION_SPEED = "production_speed"
    CUSTOMER_ACQUISITION = "customer_acquisition"
    REPUTATION = "reputation"
    LOAN_RATE = "loan_rate"
    FEATURE_UNLOCK = "feature_unlock"


# =============================================================================
# RESOURCE FLOW ENUMS
# =============================================================================


class ResourceKind(str, Enum):
    """Вид передаваемого ресурса"""

    CAPITAL = "capital"
    ENERGY = "energy"
    MATERIALS = "materials"
    SOFTWARE = "software"
    ADVERTISING = "advertising"
    DATA = "data"
    PRODUCTION = "production"
    INFLUENCE = "influence"


class FlowFrequency(str, Enum):
    """Частота передачи"""

    ONE_TIME = "one_time"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"

    @property
    def period(self) -> tuple[int, int] | None:
        """Период как (days, months); None для ONE_TIME."""
        if self == FlowFrequency.DAILY:
            return (1, 0)
        elif self == FlowFrequency.WEEKLY:
            return (7, 0)
        elif self == FlowFrequency.MONTHLY:
            return (0, 1)
        return None


class FlowStatus(str, Enum):
    """
    Статус ресурсного потока.

    COMPLETED и CANCELLED — терминальные.
    """

    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (FlowStatus.COMPLETED, FlowStatus.CANCELLED)
