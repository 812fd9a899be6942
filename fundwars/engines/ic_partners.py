"""
FundWars — Investment Committee Roster

The four IC partners, their question bank, and the scoring configuration
(dimension weights and verdict thresholds).

Partners:
    margaret  Margaret Thornwood  RISK_HAWK    downside, leverage, covenants
    david     David Chen          OPERATOR     value creation, management
    victoria  Victoria Hammond    RETURNS_MAX  IRR math, entry/exit multiples
    richard   Richard Morrison    SAGE         strategic fit, reputation
"""

from ..models import ICPartner, ICQuestion, PartnerArchetype, PortfolioCompany

# ---------------------------------------------------------------------------
# Scoring configuration
# ---------------------------------------------------------------------------

IC_EVALUATION_WEIGHTS = {
    "thesis_clarity": 0.20,
    "financial_rigor": 0.20,
    "risk_awareness": 0.15,
    "value_creation": 0.20,
    "conviction": 0.15,
    "specificity": 0.10,
}

IC_VERDICT_THRESHOLDS = {
    "APPROVED": 80,
    "CONDITIONAL": 65,
    "TABLED": 50,
}

# Per-partner vote tiers on final satisfaction
VOTE_APPROVE_AT = 70
VOTE_CONDITIONAL_AT = 55
VOTE_TABLED_AT = 40

CONDITIONAL_VOTE_REASON = "More work needed, but the fundamentals are there."
TABLED_VOTE_REASON = "I'm not convinced. Let's revisit with more diligence."

# Leverage above which Margaret leads the meeting and demands deleveraging
HIGH_LEVERAGE = 4.0


# ---------------------------------------------------------------------------
# Roster
# ---------------------------------------------------------------------------

IC_PARTNERS = (
    ICPartner(
        id="margaret",
        name="Margaret Thornwood",
        title="Managing Director, Risk",
        archetype=PartnerArchetype.RISK_HAWK,
        satisfaction_threshold=75,
        keyword="covenant",
        approve_reason="The risk analysis was thorough.",
        reject_reason="Too many unanswered risk questions.",
        famous_quote="What keeps you up at night about this deal?",
    ),
    ICPartner(
        id="david",
        name="David Chen",
        title="Operating Partner",
        archetype=PartnerArchetype.OPERATOR,
        satisfaction_threshold=60,
        keyword="management",
        pitch_bias=5,
        approve_reason="I believe in the operational plan.",
        reject_reason="The operational plan is weak.",
        famous_quote="Walk me through Day 1. What's the first call you make?",
    ),
    ICPartner(
        id="victoria",
        name="Victoria Hammond",
        title="Partner, Investments",
        archetype=PartnerArchetype.RETURNS_MAX,
        satisfaction_threshold=70,
        keyword="irr",
        pitch_bias=-5,
        approve_reason="The returns math works.",
        reject_reason="The numbers don't pencil.",
        famous_quote="I can calculate the IRR in my head faster than you can explain it.",
    ),
    ICPartner(
        id="richard",
        name="Richard Morrison",
        title="Founder & Chairman",
        archetype=PartnerArchetype.SAGE,
        satisfaction_threshold=65,
        keyword="reputation",
        approve_reason="This fits our thesis.",
        reject_reason="This isn't right for us.",
        famous_quote="In ten years, what story do we tell about this investment?",
    ),
)


def _q(partner_id, text, category, difficulty, follow_up=None):
    return ICQuestion(
        partner_id=partner_id,
        text=text,
        category=category,
        difficulty=difficulty,
        follow_up_if_weak=follow_up,
    )


IC_QUESTIONS = {
    "margaret": (
        _q("margaret", "Walk me through the downside case. What happens if revenue drops 20%?",
           "risk", "medium", "You seem unprepared. Have you even run a sensitivity analysis?"),
        _q("margaret", "The leverage ratio concerns me. What's the debt service coverage at your base case?",
           "financials", "hard"),
        _q("margaret", "What covenants are the lenders proposing, and which ones are you willing to fight for?",
           "financials", "hard"),
        _q("margaret", "Tell me about the customer concentration. What happens if the top customer leaves?",
           "risk", "medium"),
        _q("margaret", "What's the worst thing you found in due diligence that you haven't mentioned yet?",
           "risk", "gotcha"),
        _q("margaret", "How much management equity rollover are we getting, and what does that tell you?",
           "risk", "medium"),
    ),
    "david": (
        _q("david", "Walk me through Day 1. What's the first call you make to the CEO?",
           "operations", "medium"),
        _q("david", "Tell me about the management team. Who's a keeper and who needs to go?",
           "operations", "medium",
           "You're being diplomatic. I need specifics. Is the CFO capable or not?"),
        _q("david", "What's your 100-day value creation plan? Be specific.",
           "operations", "hard"),
        _q("david", "I ran a company like this. The real cost savings are in procurement. Have you looked at that?",
           "operations", "medium"),
        _q("david", "How aligned is the board going to be? Any legacy directors we need to worry about?",
           "operations", "medium"),
        _q("david", "What happens if the CEO doesn't work out? Do we have a backup plan?",
           "operations", "hard"),
    ),
    "victoria": (
        _q("victoria", "Give me the IRR at base case. Now give me the sensitivity to exit multiple.",
           "financials", "hard"),
        _q("victoria", "Why are we paying 8x when comps are trading at 6.5x? Justify the premium.",
           "financials", "hard",
           "That's not a justification, that's hope. Give me real numbers."),
        _q("victoria", "Who else is bidding? What's our edge in this process?",
           "strategy", "medium"),
        _q("victoria", "Where does the return come from? Multiple expansion, EBITDA growth, or deleveraging?",
           "financials", "medium"),
        _q("victoria", "The banker says there's another bidder at a higher price. Do you believe them?",
           "strategy", "medium"),
        _q("victoria", "At what price do we walk? Give me a number.",
           "financials", "hard"),
    ),
    "richard": (
        _q("richard", "In ten years, what story do we tell about this investment?",
           "strategy", "hard"),
        _q("richard", "How does this fit our thesis as a firm? Why is this deal right for us specifically?",
           "thesis", "medium"),
        _q("richard", "What does this deal do to our reputation if it goes wrong?",
           "risk", "medium"),
        _q("richard", "I've seen a lot of deals like this. What makes you think this time is different?",
           "thesis", "hard", "That's what they all say. Dig deeper."),
        _q("richard", "Is this a deal we'd be proud to discuss with our LPs?",
           "strategy", "medium"),
        _q("richard", "What would make you kill this deal right now, no matter the price?",
           "thesis", "gotcha"),
    ),
}


def get_partner(partner_id: str, partners=IC_PARTNERS) -> ICPartner:
    for partner in partners:
        if partner.id == partner_id:
            return partner
    raise ValueError(f"Unknown IC partner '{partner_id}'")


def partner_by_archetype(partners, archetype: PartnerArchetype):
    """First partner with the archetype, or None when the roster lacks it."""
    return next((p for p in partners if p.archetype == archetype), None)


def select_partners_for_meeting(company: PortfolioCompany, partners=IC_PARTNERS) -> tuple:
    """
    Order the roster for a meeting.

    The lead partner opens: the risk hawk on highly levered deals, the
    operator on growth equity. The sage always speaks last.
    """
    lead = None
    if company.leverage > HIGH_LEVERAGE:
        lead = partner_by_archetype(partners, PartnerArchetype.RISK_HAWK)
    elif company.deal_type.upper() == "GROWTH_EQUITY":
        lead = partner_by_archetype(partners, PartnerArchetype.OPERATOR)

    ordered = [p for p in partners if p.archetype != PartnerArchetype.SAGE]
    if lead is not None:
        ordered.remove(lead)
        ordered.insert(0, lead)
    ordered.extend(p for p in partners if p.archetype == PartnerArchetype.SAGE)
    return tuple(ordered)
