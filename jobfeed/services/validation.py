"""Company identity validation for loosely-sourced jobs."""
from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from ..db import utcnow
from ..models import Company
from ..providers.base import (
    DescriptionWriter, IdentityService, IdentityServiceError, LogoFinder, LogoLookupError, ProviderError,
)
from ..schemas import IdentityRecord
from .emails import domain_from_url, email_domain, is_free_email

logger = logging.getLogger(__name__)


class IdentityValidator:
    def __init__(self, identity: IdentityService, logos: LogoFinder,
                 describer: DescriptionWriter | None = None):
        self.identity = identity
        self.logos = logos
        self.describer = describer

    async def validate(self, db: Session, company_id: int, contact_email: str | None) -> bool:
        """True = keep the company; False = the caller must delete it."""
        if is_free_email(contact_email):
            return False
        domain = email_domain(contact_email)
        company = db.get(Company, company_id)
        if company is None:
            return False

        if company.validated_at is not None:
            # checked on an earlier run; an unknown domain never gets a logo
            return bool(company.logo)

        try:
            record = await self.identity.lookup(domain)
        except IdentityServiceError as e:
            logger.warning("[identity] lookup failed for %s, letting it through: %s", domain, e)
            return True

        if record is None:
            company.validated_at = utcnow()
            db.commit()
            logger.info("[identity] %s unknown to identity service, rejecting %s", domain, company.slug)
            return False

        self._merge(company, record, domain)
        company.validated_at = utcnow()

        try:
            logo = record.logo_url or await self._find_logo(record, domain)
        except LogoLookupError as e:
            logger.warning("[identity] logo lookup failed for %s, letting it through: %s", domain, e)
            db.commit()
            return True

        if not logo:
            db.commit()
            logger.info("[identity] no logo for %s, rejecting %s", domain, company.slug)
            return False

        company.logo = logo
        if not company.description:
            company.description = await self._fallback_description(company.name, domain)
        db.commit()
        logger.info("[identity] validated %s via %s", company.slug, domain)
        return True

    def _merge(self, company: Company, record: IdentityRecord, domain: str) -> None:
        if record.name:
            company.name = record.name
        if record.logo_url:
            company.logo = record.logo_url
        if record.description:
            company.description = record.description
        if record.industry:
            company.industry = record.industry
        if record.headquarters:
            company.headquarters = record.headquarters
        if record.size:
            company.size = record.size
        if record.linkedin_url and not company.linkedin_url:
            company.linkedin_url = record.linkedin_url
        company.website = f"https://{domain_from_url(record.domain) or domain}"

    async def _find_logo(self, record: IdentityRecord, email_dom: str) -> str | None:
        site = domain_from_url(record.domain) or email_dom
        tried = []
        for dom in (site, email_dom):
            if not dom or dom in tried:
                continue
            tried.append(dom)
            if await self.logos.has_logo(dom):
                return self.logos.logo_url(dom)
        return None

    async def _fallback_description(self, name: str, domain: str) -> str | None:
        if self.describer is None:
            return None
        try:
            return await self.describer.describe(name, domain)
        except ProviderError as e:
            logger.info("[identity] no generated description for %s: %s", domain, e)
            return None
