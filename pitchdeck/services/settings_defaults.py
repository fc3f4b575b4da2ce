"""
Built-in outline template, used whenever nothing is configured in the store.

Downstream prompt quality depends on this text; keep it verbatim.
"""

from __future__ import annotations

LEGACY_STAGE_NAMES: dict[str, str] = {
    "stage1": "Initial Engagement / Prospecting",
    "stage2": "Needs Assessment / Exploration",
    "stage3": "RFP Response",
    "stage4": "Proposal / Pitch Presentation",
    "stage5": "Evaluation / Negotiation",
}

FALLBACK_STAGE_ID = "fallback"

FALLBACK_PITCH_STAGES: list[dict] = [
    {
        "id": "stage1",
        "name": "Initial Engagement / Prospecting",
        "description": "Early stage relationship building and opportunity identification",
        "order": 1,
        "is_active": True,
    },
    {
        "id": "stage2",
        "name": "Needs Assessment / Exploration",
        "description": "Understanding client requirements and pain points",
        "order": 2,
        "is_active": True,
    },
    {
        "id": "stage3",
        "name": "RFP Response",
        "description": "Formal response to Request for Proposal",
        "order": 3,
        "is_active": True,
    },
    {
        "id": "stage4",
        "name": "Proposal / Pitch Presentation",
        "description": "Formal presentation of proposed solution",
        "order": 4,
        "is_active": True,
    },
    {
        "id": "stage5",
        "name": "Evaluation / Negotiation",
        "description": "Final evaluation and contract negotiation phase",
        "order": 5,
        "is_active": True,
    },
]

# (title, description, is_required)
_FALLBACK_SLIDES: list[tuple[str, str, bool]] = [
    ("Title & Introduction", "Personalized for client with clear value proposition", True),
    ("Executive Summary", "Concise overview of proposal and key benefits", True),
    ("Client Background & Understanding", "Demonstrate deep knowledge of client's business and challenges", True),
    ("Our Understanding of Your Needs", "Show you've listened and truly understand their priorities", True),
    ("Proposed Solution Overview", "High-level solution with clear alignment to client needs", True),
    ("Solution Details", "Specifics of your proposed banking/financial services", True),
    ("Implementation Approach", "How your solution will be delivered seamlessly", True),
    ("Our Team & Expertise", "Showcase the relationship team and specialists", True),
    ("Case Studies & Credentials", "Relevant success stories with similar clients", True),
    ("Competitive Differentiation", "Why your solution is superior to alternatives", True),
    ("Pricing & Value", "Clear economics with focus on value, not just cost", True),
    ("Risk Management & Compliance", "How you ensure security and regulatory compliance", True),
    ("ESG & Sustainability Considerations", "Alignment with client's ESG priorities", False),
    ("Next Steps", "Clear implementation timeline and actions", True),
]

FALLBACK_SLIDE_STRUCTURES: list[dict] = [
    {
        "id": str(order),
        "pitch_stage_id": FALLBACK_STAGE_ID,
        "title": title,
        "description": description,
        "order": order,
        "is_required": required,
        "is_active": True,
    }
    for order, (title, description, required) in enumerate(_FALLBACK_SLIDES, start=1)
]

_FALLBACK_PRINCIPLES: list[tuple[str, str]] = [
    (
        "Relationship-First Approach",
        "Emphasize long-term partnership over transactional relationship. Show commitment at "
        "senior levels and how you'll provide ongoing value.",
    ),
    (
        "Customization & Client Focus",
        "The entire pitch must feel tailor-made. Use the client's terminology, reference their "
        "specific challenges, and align with their strategic goals.",
    ),
    (
        "Data-Driven Insights",
        "Provide valuable benchmarking or insights the client may not have heard elsewhere. "
        "Show how your analysis of their situation uncovers opportunities.",
    ),
    (
        "Memorable Differentiation",
        "For each key area, articulate a clear, memorable differentiator that separates you "
        "from competitors. Focus on what makes your approach unique.",
    ),
    (
        "Proof Points & Credentials",
        "Support claims with evidence - market rankings, case studies, testimonials, or "
        "relevant experience. Emphasize track record with similar clients.",
    ),
    (
        "Solution Over Products",
        "Focus on outcomes and solutions rather than product features. Frame everything in "
        "terms of client benefits and addressing their specific challenges.",
    ),
    (
        "Consultative Stance",
        "Position as a trusted advisor bringing expertise, not just selling services. "
        "Demonstrate understanding of the client's industry and strategic direction.",
    ),
    (
        "Technology & Innovation",
        "Showcase digital capabilities and innovative approaches that improve client "
        "experience, efficiency, or insights.",
    ),
    (
        "Risk & Compliance Expertise",
        "Highlight your risk management capabilities and how you ensure compliance with "
        "regulations.",
    ),
    (
        "Implementation Excellence",
        "Address the client's potential concerns about transition and demonstrate your "
        "proven ability to execute seamlessly.",
    ),
    (
        "Team Chemistry",
        "Emphasize the strength of the team that will serve the client, highlighting the "
        "client-centric service model and how relationships will be managed.",
    ),
    (
        "ESG & Values Alignment",
        "Where relevant, show alignment with the client's sustainability goals and values, "
        "demonstrating shared purpose beyond transactions.",
    ),
    (
        "Visual Impact",
        "Recommend strong visuals that simplify complex ideas and make the pitch memorable. "
        "Suggest creative ways to make your pitch stand out.",
    ),
]

FALLBACK_KEY_PRINCIPLES: list[dict] = [
    {
        "id": str(order),
        "title": title,
        "description": description,
        "order": order,
        "is_active": True,
    }
    for order, (title, description) in enumerate(_FALLBACK_PRINCIPLES, start=1)
]
