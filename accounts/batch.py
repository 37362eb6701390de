"""Concurrent verification of many pasted / imported credentials"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

import settings
from utils.errors import AuthFlowError, ConfigurationError
from .models import AccountSnapshot, CredentialBundle, now_ms
from .refresher import TokenRefresher
from .verifier import CredentialVerifier

logger = logging.getLogger(__name__)


@dataclass
class VerifiedAccount:
    bundle: CredentialBundle
    snapshot: AccountSnapshot

    def to_dict(self) -> Dict[str, Any]:
        return {"credentials": self.bundle.to_dict(), "account": self.snapshot.to_dict()}


@dataclass
class BatchItemResult:
    index: int
    success: bool
    data: Optional[Dict[str, Any]] = None
    error: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"index": self.index, "success": self.success}
        if self.success:
            result["data"] = self.data
        else:
            result["error"] = self.error
        return result


@dataclass
class BatchReport:
    results: List[BatchItemResult] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed(self) -> int:
        return len(self.results) - self.succeeded

    @property
    def errors(self) -> List[str]:
        return [f"#{r.index + 1}: {r.error['message']}" for r in self.results if not r.success]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": len(self.results),
            "succeeded": self.succeeded,
            "failed": self.failed,
            "errors": self.errors,
            "results": [r.to_dict() for r in self.results],
        }


class BatchVerifier:
    """Refresh-then-verify for each credential, isolated per item"""

    def __init__(
        self,
        refresher: Optional[TokenRefresher] = None,
        verifier: Optional[CredentialVerifier] = None,
        concurrency: Optional[int] = None,
    ):
        self.verifier = verifier or CredentialVerifier()
        self.refresher = refresher or TokenRefresher(portal=self.verifier.portal)
        self.concurrency = max(1, concurrency or settings.BATCH_CONCURRENCY)

    async def verify_credentials(self, bundle: CredentialBundle) -> VerifiedAccount:
        """Add-account path: refresh when refresh credentials exist, then verify

        Raises:
            ConfigurationError: Neither a refresh token nor an access token
        """
        if bundle.refresh_token:
            tokens = await self.refresher.refresh(bundle)
            bundle = bundle.with_refreshed(tokens, now_ms())
        elif not bundle.access_token:
            raise ConfigurationError("Missing refreshToken")

        snapshot = await self.verifier.verify(bundle.access_token, bundle.idp)
        if snapshot.email and not bundle.email:
            bundle.email = snapshot.email
        return VerifiedAccount(bundle=bundle, snapshot=snapshot)

    async def _run_item(self, index: int, item: Any, semaphore: asyncio.Semaphore) -> BatchItemResult:
        async with semaphore:
            try:
                if not isinstance(item, dict):
                    raise ConfigurationError("Credential entry must be an object")
                bundle = CredentialBundle.from_dict(item)
                verified = await self.verify_credentials(bundle)
                return BatchItemResult(index=index, success=True, data=verified.to_dict())
            except AuthFlowError as e:
                logger.warning(f"Batch item #{index + 1} failed: {e.message}")
                return BatchItemResult(index=index, success=False, error=e.to_dict())
            except Exception as e:
                logger.exception(f"Batch item #{index + 1} failed unexpectedly")
                return BatchItemResult(index=index, success=False, error={"kind": "error", "message": str(e)})

    async def verify_many(self, items: Iterable[Any]) -> BatchReport:
        """Verify all items concurrently; one failure never affects another"""
        items = list(items)
        semaphore = asyncio.Semaphore(self.concurrency)
        logger.info(f"Verifying {len(items)} credentials (concurrency {self.concurrency})")
        results = await asyncio.gather(*(self._run_item(i, item, semaphore) for i, item in enumerate(items)))
        report = BatchReport(results=list(results))
        logger.info(f"Batch verification finished: {report.succeeded} succeeded, {report.failed} failed")
        return report
