"""
FundWars Domain Models

Immutable records shared by the world engine, the Investment Committee
engine and the API layer. Every engine takes a snapshot and returns a new
one (dataclasses.replace), so a failed step never leaves a record half
updated.

Sections:
    - Enums (market regime, deal phase, event/warning vocab, IC vocab)
    - Portfolio: PortfolioCompany, CompanyActiveEvent
    - Player world: PlayerState, NPC, RivalFund, StatChanges
    - Tick output: RiskWarning, NPCDrama, RivalAction, MarketChange, WorldTickResult
    - Investment Committee: ICPartner, ICQuestion, PartnerReaction, ICExchange,
      PartnerVote, ICConsequences, ICVerdict
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


# ---------------------------------------------------------------------------
# ENUMS
# ---------------------------------------------------------------------------

class MarketVolatility(str, Enum):
    NORMAL = "NORMAL"
    BULL_RUN = "BULL_RUN"
    PANIC = "PANIC"
    CREDIT_CRUNCH = "CREDIT_CRUNCH"


class DealPhase(str, Enum):
    PIPELINE = "PIPELINE"
    ANALYZED = "ANALYZED"
    BIDDING = "BIDDING"
    WON = "WON"
    LOST = "LOST"
    WALKED_AWAY = "WALKED_AWAY"


class CompanyStatus(str, Enum):
    PIPELINE = "PIPELINE"
    OWNED = "OWNED"
    EXITING = "EXITING"


class EventType(str, Enum):
    REVENUE_DROP = "REVENUE_DROP"
    KEY_CUSTOMER_LOSS = "KEY_CUSTOMER_LOSS"
    MANAGEMENT_DEPARTURE = "MANAGEMENT_DEPARTURE"
    COMPETITOR_THREAT = "COMPETITOR_THREAT"
    ACQUISITION_OPPORTUNITY = "ACQUISITION_OPPORTUNITY"
    REGULATORY_ISSUE = "REGULATORY_ISSUE"
    UNION_DISPUTE = "UNION_DISPUTE"
    SUPPLY_CHAIN_CRISIS = "SUPPLY_CHAIN_CRISIS"
    ACTIVIST_INVESTOR = "ACTIVIST_INVESTOR"
    IPO_WINDOW = "IPO_WINDOW"
    STRATEGIC_BUYER_INTEREST = "STRATEGIC_BUYER_INTEREST"


class EventSeverity(str, Enum):
    INFO = "INFO"
    WARNING = "WARNING"
    CRITICAL = "CRITICAL"


class WarningType(str, Enum):
    CASH = "CASH"
    HEALTH = "HEALTH"
    STRESS = "STRESS"
    REPUTATION = "REPUTATION"
    LOAN = "LOAN"
    PORTFOLIO = "PORTFOLIO"
    DEADLINE = "DEADLINE"


class WarningSeverity(str, Enum):
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class Urgency(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class RivalStrategy(str, Enum):
    PREDATORY = "PREDATORY"
    AGGRESSIVE = "AGGRESSIVE"
    OPPORTUNISTIC = "OPPORTUNISTIC"
    CONSERVATIVE = "CONSERVATIVE"


class ICPhase(str, Enum):
    PREP = "PREP"
    OPENING_PITCH = "OPENING_PITCH"
    INTERROGATION = "INTERROGATION"
    DELIBERATION = "DELIBERATION"
    VERDICT = "VERDICT"


# Index order used to assert phases only move forward
IC_PHASE_ORDER = [
    ICPhase.PREP,
    ICPhase.OPENING_PITCH,
    ICPhase.INTERROGATION,
    ICPhase.DELIBERATION,
    ICPhase.VERDICT,
]


class VerdictOutcome(str, Enum):
    APPROVED = "APPROVED"
    CONDITIONAL = "CONDITIONAL"
    TABLED = "TABLED"
    REJECTED = "REJECTED"


class DealOutcome(str, Enum):
    PROCEED = "PROCEED"
    RENEGOTIATE = "RENEGOTIATE"
    WALK_AWAY = "WALK_AWAY"


class PartnerArchetype(str, Enum):
    RISK_HAWK = "RISK_HAWK"
    OPERATOR = "OPERATOR"
    RETURNS_MAX = "RETURNS_MAX"
    SAGE = "SAGE"


# ---------------------------------------------------------------------------
# PORTFOLIO
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CompanyActiveEvent:
    """A transient event attached to one portfolio company."""
    id: str
    company_id: str
    type: EventType
    title: str
    severity: EventSeverity
    expires_week: int
    consult_advisor: bool = False
    description: str = ""


@dataclass(frozen=True)
class PortfolioCompany:
    """
    Snapshot of a company in the pipeline or the portfolio.

    Optional financial fields are None until filled by
    initialize_portfolio_company_fields().
    """
    id: str
    name: str
    sector: str = "General"
    deal_type: str = "LBO"

    # Financials
    revenue: int = 0
    ebitda: int = 0
    ebitda_margin: Optional[float] = None
    debt: float = 0.0
    cash_balance: Optional[float] = None
    current_valuation: float = 0.0
    investment_cost: float = 0.0
    revenue_growth: float = 0.0
    employee_count: Optional[int] = None
    employee_growth: float = 0.0
    customer_churn: Optional[float] = None
    runway_months: Optional[int] = None

    # Governance (0-100)
    ceo_performance: Optional[float] = None
    board_alignment: Optional[float] = None

    # Lifecycle
    deal_phase: DealPhase = DealPhase.PIPELINE
    is_analyzed: bool = False
    deal_closed: bool = False
    is_in_exit_process: bool = False
    has_board_crisis: bool = False
    leverage_model_viewed: bool = False
    exit_type: Optional[str] = None
    acquisition_week: Optional[int] = None

    active_event: Optional[CompanyActiveEvent] = None

    @property
    def leverage(self) -> float:
        """Debt / EBITDA; 0 when EBITDA is not positive."""
        if self.ebitda <= 0:
            return 0.0
        return self.debt / self.ebitda


# ---------------------------------------------------------------------------
# PLAYER WORLD
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RelationshipUpdate:
    npc_id: str
    change: int
    trust_change: int = 0
    memory: str = ""


@dataclass(frozen=True)
class StatChanges:
    """Delta payload applied to the player (and NPC relationships)."""
    cash: float = 0
    reputation: int = 0
    stress: int = 0
    ethics: int = 0
    audit_risk: int = 0
    health: int = 0
    relationship_updates: tuple[RelationshipUpdate, ...] = ()
    sets_flags: tuple[str, ...] = ()

    def is_empty(self) -> bool:
        return not (
            self.cash or self.reputation or self.stress or self.ethics
            or self.audit_risk or self.health
            or self.relationship_updates or self.sets_flags
        )


@dataclass(frozen=True)
class PlayerState:
    cash: float = 10000
    health: int = 100
    stress: int = 20
    reputation: int = 50
    ethics: int = 50
    audit_risk: int = 0
    loan_balance: float = 0
    loan_rate: float = 0.0
    portfolio: tuple[PortfolioCompany, ...] = ()
    flags: frozenset[str] = frozenset()


@dataclass(frozen=True)
class NPC:
    id: str
    name: str
    role: str = ""
    relationship: int = 50
    trust: int = 50
    is_rival: bool = False
    memories: tuple[str, ...] = ()


@dataclass(frozen=True)
class RivalFund:
    id: str
    name: str
    strategy: RivalStrategy
    reputation: int = 50


# ---------------------------------------------------------------------------
# TICK OUTPUT
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RiskWarning:
    id: str
    type: WarningType
    severity: WarningSeverity
    title: str
    message: str
    suggested_action: str
    current_value: Optional[float] = None
    threshold: Optional[float] = None


@dataclass(frozen=True)
class DramaChoice:
    text: str
    description: str
    outcome_description: str
    stat_changes: StatChanges = field(default_factory=StatChanges)


@dataclass(frozen=True)
class NPCDrama:
    id: str
    title: str
    description: str
    involved_npcs: tuple[str, ...]
    player_must_choose_side: bool
    urgency: Urgency
    expires_week: int
    choices: tuple[DramaChoice, ...]


@dataclass(frozen=True)
class RivalAction:
    rival_id: str
    rival_name: str
    action: str
    impact: str
    target: Optional[str] = None


@dataclass(frozen=True)
class MarketChange:
    type: str
    description: str
    impact: StatChanges


@dataclass(frozen=True)
class WorldTickResult:
    """Everything one tick produced. The caller merges it into durable state."""
    week: int
    company_updates: dict[str, PortfolioCompany] = field(default_factory=dict)
    new_events: tuple[CompanyActiveEvent, ...] = ()
    expired_event_ids: tuple[str, ...] = ()
    warnings: tuple[RiskWarning, ...] = ()
    npc_drama: Optional[NPCDrama] = None
    rival_action: Optional[RivalAction] = None
    market_change: Optional[MarketChange] = None
    quarter_processed: bool = False


# ---------------------------------------------------------------------------
# INVESTMENT COMMITTEE
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ICPartner:
    id: str
    name: str
    title: str
    archetype: PartnerArchetype
    satisfaction_threshold: int
    keyword: str
    pitch_bias: int = 0
    approve_reason: str = ""
    reject_reason: str = ""
    famous_quote: str = ""


@dataclass(frozen=True)
class ICQuestion:
    partner_id: str
    text: str
    category: str
    difficulty: str
    follow_up_if_weak: Optional[str] = None
    is_follow_up: bool = False


@dataclass(frozen=True)
class PartnerReaction:
    partner_id: str
    satisfaction: int
    reaction: str
    feedback: str
    follow_up_question: Optional[str] = None


@dataclass(frozen=True)
class ICExchange:
    """One question/answer round in the interrogation."""
    partner_id: str
    question: str
    category: str
    response: str
    reaction: PartnerReaction


@dataclass(frozen=True)
class PartnerVote:
    partner_id: str
    vote: VerdictOutcome
    reasoning: str


@dataclass(frozen=True)
class ICConsequences:
    deal_outcome: DealOutcome
    reputation_change: int
    skill_points: dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class ICEvaluation:
    dimensions: dict[str, float]
    overall_score: int
    concepts_demonstrated: tuple[str, ...] = ()
    concepts_missing: tuple[str, ...] = ()
    learning_recommendation: str = ""
    specific_advice: str = ""


@dataclass(frozen=True)
class ICVerdict:
    """Terminal record of an IC meeting."""
    outcome: VerdictOutcome
    dimensions: dict[str, float]
    overall_score: int
    votes: tuple[PartnerVote, ...]
    conditions: tuple[str, ...] = ()
    consequences: Optional[ICConsequences] = None
    concepts_demonstrated: tuple[str, ...] = ()
    concepts_missing: tuple[str, ...] = ()
    learning_recommendation: str = ""
    specific_advice: str = ""
