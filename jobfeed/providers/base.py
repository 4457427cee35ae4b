from typing import Protocol

from ..schemas import IdentityRecord, JobCandidate


class ProviderError(Exception):
    """Transport or API failure talking to an external collaborator."""


class ExtractionError(ProviderError):
    pass


class IdentityServiceError(ProviderError):
    pass


class LogoLookupError(ProviderError):
    pass


class NotificationError(ProviderError):
    pass


class ExtractionModel(Protocol):
    async def extract(self, text: str) -> JobCandidate | None:
        ...


class ClassificationModel(Protocol):
    async def classify(self, title: str, skills: list[str]) -> str:
        ...


class DescriptionWriter(Protocol):
    async def describe(self, name: str, domain: str) -> str | None:
        ...


class IdentityService(Protocol):
    # None means the service has never heard of the domain
    async def lookup(self, domain: str) -> IdentityRecord | None:
        ...


class LogoFinder(Protocol):
    async def has_logo(self, domain: str) -> bool:
        ...

    def logo_url(self, domain: str) -> str:
        ...


class Notifier(Protocol):
    kind: str

    async def send(self, job_id: int, payload: str | None) -> None:
        ...
