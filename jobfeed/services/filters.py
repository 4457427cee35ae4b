from __future__ import annotations

import re

from ..config import settings
from .dedup import normalize_title

# checked first: a hit here rejects the title even if the whitelist matches too
BLACKLIST = [
    # healthcare
    "nurse", "nursing", "caregiver", "physician", "surgeon", "dentist", "pharmacist",
    "veterinarian", "medical assistant", "clinical", "patient care", "paramedic",
    # construction and trades
    "construction", "foreman", "electrician", "plumber", "hvac", "welder", "carpenter",
    "roofer", "drywall", "crane operator", "bricklayer",
    # manufacturing
    "manufacturing", "production worker", "assembler", "machine operator", "cnc operator",
    "factory", "machinist",
    # retail and hospitality
    "retail", "cashier", "store manager", "cook", "chef", "barista", "bartender", "waiter",
    "waitress", "housekeeper", "front desk", "restaurant manager",
    # logistics
    "driver", "truck driver", "courier", "warehouse", "forklift", "picker", "packer",
    "dispatcher", "freight", "supply chain",
    # field work
    "field technician", "field service", "maintenance technician", "landscaper",
    "surveyor", "agriculture",
    "security guard", "janitor", "cleaner", "handyman",
    "receptionist", "office manager", "event planner", "event coordinator",
    # accounting
    "accountant", "bookkeeper", "accounts payable", "accounts receivable", "payroll",
    "auditor", "tax preparer", "billing specialist",
    "field sales", "outside sales", "door to door", "territory manager", "brand ambassador",
    "property manager", "leasing agent", "real estate agent", "realtor",
    "hairdresser", "barber", "massage therapist", "personal trainer", "fitness instructor",
    "attorney", "lawyer", "litigation",
    "volunteer", "laborer", "police", "firefighter", "flight attendant", "pilot",
]

WHITELIST = [
    # engineering
    "software engineer", "software developer", "frontend developer", "front-end developer",
    "backend developer", "back-end developer", "fullstack developer", "full-stack developer",
    "frontend engineer", "front-end engineer", "backend engineer", "back-end engineer",
    "fullstack engineer", "full-stack engineer", "full stack engineer", "web developer",
    "mobile developer", "ios developer", "android developer", "ios engineer", "android engineer",
    "python developer", "python engineer", "java developer", "java engineer",
    "golang developer", "go developer", "rust developer", "ruby developer", "php developer",
    "blockchain developer", "smart contract developer", "solidity", "game developer",
    "embedded engineer", "firmware engineer", "tech lead", "technical lead",
    "engineering manager", "head of engineering", "cto", "principal engineer",
    "staff engineer", "senior engineer", "lead engineer", "developer", "programmer",
    # data
    "data scientist", "data analyst", "data engineer", "machine learning engineer",
    "ml engineer", "ai engineer", "business intelligence", "bi developer", "bi analyst",
    "analytics engineer", "data architect", "prompt engineer", "ai trainer", "data annotator",
    # devops
    "devops", "sre", "site reliability", "platform engineer", "infrastructure engineer",
    "cloud engineer", "cloud architect", "solutions architect", "systems administrator",
    "sysadmin", "database administrator", "dba", "network engineer", "release engineer",
    # qa
    "qa engineer", "qa analyst", "quality assurance engineer", "test engineer",
    "test automation", "automation engineer", "sdet", "qa tester", "tester", "qa lead",
    # security
    "security engineer", "security analyst", "security architect", "cybersecurity",
    "information security", "infosec", "penetration tester", "appsec", "soc analyst",
    # design
    "ui designer", "ux designer", "ui/ux", "ux/ui", "product designer", "visual designer",
    "graphic designer", "web designer", "motion designer", "brand designer", "art director",
    "creative director", "3d artist", "designer",
    # product and project
    "product manager", "product owner", "product lead", "head of product", "product analyst",
    "project manager", "program manager", "scrum master", "agile coach", "delivery manager",
    # marketing and content
    "marketing manager", "digital marketing", "growth marketing", "performance marketing",
    "content marketing", "seo specialist", "seo manager", "ppc specialist", "media buyer",
    "social media manager", "community manager", "email marketing", "marketing automation",
    "crm manager", "brand manager", "growth manager", "head of growth", "demand generation",
    "lead generation", "head of marketing", "cmo", "copywriter", "content writer",
    "technical writer", "ux writer", "editor", "content manager", "content creator",
    "content strategist",
    # video and audio
    "video editor", "video producer", "videographer", "animator", "sound designer",
    "audio engineer", "podcast editor", "voice artist", "vfx artist",
    # translation
    "translator", "interpreter", "localization specialist", "localization manager",
    "transcriptionist", "subtitler", "language specialist",
    # sales and support
    "account executive", "sales development representative", "sdr",
    "business development representative", "bdr", "business development manager",
    "sales engineer", "solutions engineer", "customer success manager", "account manager",
    "partnership manager", "inside sales", "sales manager", "head of sales",
    "revenue operations", "customer support", "technical support", "support engineer",
    "support specialist", "it support", "helpdesk", "customer experience",
    "implementation manager", "implementation specialist", "onboarding specialist",
    # people
    "recruiter", "technical recruiter", "sourcer", "talent acquisition", "hr business partner",
    "people operations", "people partner", "head of people",
    # finance, legal, education
    "financial analyst", "fp&a", "finance manager", "investment analyst", "cfo",
    "contract manager", "compliance specialist", "compliance analyst", "compliance manager",
    "privacy specialist", "paralegal", "legal operations",
    "instructional designer", "curriculum developer", "corporate trainer", "technical trainer",
    # research, operations, consulting
    "ux researcher", "user researcher", "market researcher", "research analyst",
    "operations manager", "business operations", "operations analyst", "business analyst",
    "chief of staff", "executive assistant", "virtual assistant", "data entry specialist",
    "management consultant", "strategy consultant", "it consultant", "salesforce consultant",
    "sap consultant", "implementation consultant", "business consultant",
]


def compile_patterns(patterns: list[str]) -> re.Pattern | None:
    """Case-insensitive, whole-word alternation of literal phrases."""
    parts = [rf"\b{re.escape(p.strip().lower())}\b" for p in patterns if p and p.strip()]
    return re.compile("|".join(parts), re.I) if parts else None


_BLACKLIST_RE = compile_patterns(BLACKLIST)
_WHITELIST_RE = compile_patterns(WHITELIST)


def _matches(builtin: re.Pattern | None, extra: list[str] | None, title: str) -> bool:
    if builtin is not None and builtin.search(title):
        return True
    extra_re = compile_patterns(extra or [])
    return bool(extra_re and extra_re.search(title))


def is_blacklisted_profession(title: str | None, extra: list[str] | None = None) -> bool:
    t = normalize_title(title)
    return bool(t) and _matches(_BLACKLIST_RE, extra, t)


def is_target_profession(title: str | None, extra: list[str] | None = None) -> bool:
    t = normalize_title(title)
    return bool(t) and _matches(_WHITELIST_RE, extra, t)


def should_import_title(title: str | None) -> bool:
    if not settings.PROFESSION_FILTER_ENABLED:
        return True
    if is_blacklisted_profession(title, settings.PROFESSION_BLACKLIST):
        return False
    return is_target_profession(title, settings.PROFESSION_WHITELIST)
