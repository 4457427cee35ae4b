from __future__ import annotations

import re

FREE_EMAIL_PROVIDERS = frozenset({
    "gmail.com", "googlemail.com", "yahoo.com", "ymail.com", "hotmail.com", "outlook.com",
    "live.com", "msn.com", "icloud.com", "me.com", "mac.com", "aol.com",
    "protonmail.com", "proton.me", "pm.me", "mail.com", "zoho.com", "gmx.com", "gmx.net",
    "fastmail.com", "tutanota.com", "yandex.com", "yandex.ru", "mail.ru", "rambler.ru",
    "inbox.ru", "list.ru", "qq.com", "163.com", "126.com",
})

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

# second-level labels that sit under a country code ("acme.co.uk")
_COMPOUND_SLD = {"co", "com", "org", "net", "ac", "gov", "edu"}


def _first_address(email: str) -> str:
    # model output sometimes carries trailing text: "jobs@acme.io, or DM me"
    return re.split(r"[,;\s]", email.strip(), maxsplit=1)[0].strip()


def clean_email(email: str | None) -> str | None:
    if not email:
        return None
    first = _first_address(email).strip("<>()[]").rstrip(".")
    if not _EMAIL_RE.match(first):
        return None
    return first.lower()


def email_domain(email: str | None) -> str | None:
    if not email or "@" not in email:
        return None
    domain = _first_address(email).split("@", 1)[1].lower().strip(".>")
    if not domain or "." not in domain:
        return None
    return domain


def is_free_email(email: str | None) -> bool:
    """True for consumer mailboxes, and for anything that is not an address at all."""
    domain = email_domain(email)
    if not domain:
        return True
    return domain in FREE_EMAIL_PROVIDERS


def is_corporate_email(email: str | None) -> bool:
    return not is_free_email(email)


def registrable_label(domain: str) -> str:
    """'careers.acme-labs.co.uk' -> 'acme-labs'."""
    parts = [p for p in domain.lower().split(".") if p]
    if parts and parts[0] == "www":
        parts = parts[1:]
    if len(parts) >= 3 and parts[-2] in _COMPOUND_SLD and len(parts[-1]) == 2:
        return parts[-3]
    if len(parts) >= 2:
        return parts[-2]
    return parts[0] if parts else ""


def company_name_from_domain(domain: str | None) -> str | None:
    if not domain:
        return None
    label = registrable_label(domain)
    if not label:
        return None
    return " ".join(w.capitalize() for w in re.split(r"[-_]+", label) if w)


def domain_from_url(url: str | None) -> str | None:
    if not url:
        return None
    m = re.match(r"^(?:[a-z]+://)?(?:www\.)?([^/:?#\s]+)", url.strip(), re.I)
    if not m or "." not in m.group(1):
        return None
    return m.group(1).lower()
