"""
utbms.py
--------

Static UTBMS reference tables: activity codes (L-series) and expense
codes (E-series) with human readable descriptions. The tables are built
once at import and exposed through read-only mappings.
"""
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional, Tuple


class UTBMSActivityCode(str, Enum):
    L100 = "L100"
    L110 = "L110"
    L120 = "L120"
    L130 = "L130"
    L140 = "L140"
    L150 = "L150"
    L160 = "L160"
    L170 = "L170"
    L200 = "L200"
    L210 = "L210"
    L220 = "L220"
    L230 = "L230"
    L240 = "L240"
    L250 = "L250"
    L300 = "L300"
    L310 = "L310"
    L320 = "L320"
    L400 = "L400"
    L410 = "L410"
    L420 = "L420"
    L500 = "L500"
    L510 = "L510"
    L520 = "L520"
    L530 = "L530"


class UTBMSExpenseCode(str, Enum):
    E100 = "E100"
    E110 = "E110"
    E120 = "E120"
    E130 = "E130"
    E140 = "E140"
    E150 = "E150"
    E160 = "E160"
    E170 = "E170"
    E200 = "E200"
    E210 = "E210"
    E220 = "E220"
    E300 = "E300"


@dataclass(frozen=True)
class ActivityDefinition:
    code: UTBMSActivityCode
    description: str
    category: str
    examples: Tuple[str, ...] = ()
    time_guidelines: Optional[str] = None

    def to_dict(self) -> dict:
        return {"code": self.code.value, "description": self.description, "category": self.category,
                "examples": list(self.examples), "timeGuidelines": self.time_guidelines}


@dataclass(frozen=True)
class ExpenseDefinition:
    code: UTBMSExpenseCode
    description: str
    category: str
    examples: Tuple[str, ...] = ()
    requires_receipt: bool = True

    def to_dict(self) -> dict:
        return {"code": self.code.value, "description": self.description, "category": self.category,
                "examples": list(self.examples), "requiresReceipt": self.requires_receipt}


A = UTBMSActivityCode
E = UTBMSExpenseCode

ACTIVITIES: Tuple[ActivityDefinition, ...] = (
    ActivityDefinition(A.L100, "Case Assessment, Development of Case Strategy, and Budgeting", "case_assessment",
                       ("Initial case evaluation", "Strategic planning", "Budget preparation"),
                       "Initial assessment and planning activities"),
    ActivityDefinition(A.L110, "Case Management and Administration", "case_management",
                       ("File management", "Scheduling", "Administrative tasks"),
                       "Ongoing case administration"),
    ActivityDefinition(A.L120, "Analysis and Strategy", "case_assessment",
                       ("Liability analysis", "Damages exposure review")),
    ActivityDefinition(A.L130, "Experts and Consultants", "expert_witness",
                       ("Expert selection", "Consultant interviews")),
    ActivityDefinition(A.L140, "Client Communications", "client_relations",
                       ("Status reports", "Client calls")),
    ActivityDefinition(A.L150, "Budgeting", "case_assessment",
                       ("Budget preparation", "Budget revisions")),
    ActivityDefinition(A.L160, "Settlement and Non-Binding ADR", "case_management",
                       ("Settlement negotiations", "Mediation preparation")),
    ActivityDefinition(A.L170, "Other Case Assessment and Management", "other",
                       ("Conflict checks",)),
    ActivityDefinition(A.L200, "Fact Investigation and Development", "fact_investigation",
                       ("Witness interviews", "Site inspections", "Fact gathering"),
                       "Investigation and fact development"),
    ActivityDefinition(A.L210, "Witness Interviews", "fact_investigation",
                       ("Fact witness interviews",)),
    ActivityDefinition(A.L220, "Site Inspections", "fact_investigation",
                       ("Accident scene visit",)),
    ActivityDefinition(A.L230, "Records Gathering", "fact_development",
                       ("Medical records requests", "Public records searches")),
    ActivityDefinition(A.L240, "Travel for Fact Investigation", "travel",
                       ("Travel to site inspection",)),
    ActivityDefinition(A.L250, "Other Fact Development", "fact_development",
                       ("Timeline preparation",)),
    ActivityDefinition(A.L300, "Legal Research", "legal_research",
                       ("Case law research", "Statutory research", "Legal memoranda"),
                       "Research activities"),
    ActivityDefinition(A.L310, "Research Memoranda", "legal_research",
                       ("Research memorandum drafting",)),
    ActivityDefinition(A.L320, "Statutory and Regulatory Research", "legal_research",
                       ("Regulatory guidance review",)),
    ActivityDefinition(A.L400, "Document and File Management, Review, and Production", "document_review",
                       ("Document review", "Production preparation", "Discovery responses"),
                       "Document-related activities"),
    ActivityDefinition(A.L410, "Document Production", "document_review",
                       ("Bates stamping", "Privilege log preparation")),
    ActivityDefinition(A.L420, "Discovery Responses", "document_review",
                       ("Interrogatory answers", "Responses to requests for production")),
    ActivityDefinition(A.L500, "Pleadings, Motions, and Other Court Documents", "document_drafting",
                       ("Motion drafting", "Brief preparation", "Pleading preparation"),
                       "Court document preparation"),
    ActivityDefinition(A.L510, "Motions", "document_drafting",
                       ("Motion to dismiss", "Summary judgment motion")),
    ActivityDefinition(A.L520, "Briefs", "document_drafting",
                       ("Opposition brief", "Reply brief")),
    ActivityDefinition(A.L530, "Pleadings", "document_drafting",
                       ("Complaint", "Answer", "Counterclaim")),
)

EXPENSES: Tuple[ExpenseDefinition, ...] = (
    ExpenseDefinition(E.E100, "Court and Other Fees", "court_fees",
                      ("Filing fees", "Service fees", "Court reporter fees")),
    ExpenseDefinition(E.E110, "Service of Process", "service_fees",
                      ("Process server fees", "Certified mail", "Publication costs")),
    ExpenseDefinition(E.E120, "Investigation", "investigation",
                      ("Private investigator fees", "Background checks", "Asset searches")),
    ExpenseDefinition(E.E130, "Experts", "experts",
                      ("Expert witness fees", "Consulting fees", "Expert reports")),
    ExpenseDefinition(E.E140, "Technology", "technology",
                      ("Legal database fees", "Software licensing", "E-discovery costs")),
    ExpenseDefinition(E.E150, "Travel", "travel",
                      ("Airfare", "Hotel expenses", "Ground transportation")),
    ExpenseDefinition(E.E160, "Telecommunications", "communications",
                      ("Conference call services", "Long distance charges"), False),
    ExpenseDefinition(E.E170, "Copying and Printing", "document_production",
                      ("Photocopies", "Color printing", "Binding"), False),
    ExpenseDefinition(E.E200, "Document Production Vendors", "document_production",
                      ("Scanning", "Coding", "Hosting")),
    ExpenseDefinition(E.E210, "Messenger and Courier", "communications",
                      ("Overnight delivery", "Courier")),
    ExpenseDefinition(E.E220, "Postage", "communications",
                      ("First class mail",), False),
    ExpenseDefinition(E.E300, "Other", "other", ("Miscellaneous disbursements",)),
)

_ACTIVITY_BY_CODE: Mapping[UTBMSActivityCode, ActivityDefinition] = MappingProxyType({a.code: a for a in ACTIVITIES})
_EXPENSE_BY_CODE: Mapping[UTBMSExpenseCode, ExpenseDefinition] = MappingProxyType({x.code: x for x in EXPENSES})


def activities() -> Tuple[ActivityDefinition, ...]:
    return ACTIVITIES


def expenses() -> Tuple[ExpenseDefinition, ...]:
    return EXPENSES


def get_activity(code) -> Optional[ActivityDefinition]:
    try:
        return _ACTIVITY_BY_CODE.get(UTBMSActivityCode(code))
    except ValueError:
        return None


def get_expense(code) -> Optional[ExpenseDefinition]:
    try:
        return _EXPENSE_BY_CODE.get(UTBMSExpenseCode(code))
    except ValueError:
        return None
