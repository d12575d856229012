"""Chain-native payment engine (HOT Pay partner API)."""

from __future__ import annotations

import secrets
import time
from typing import Sequence

import httpx

from gitsplits.backends.protocols import PaymentReceipt, Recipient
from gitsplits.config import Settings, has_credential
from gitsplits.errors import ConfigurationError, PaymentEngineFailure
from gitsplits.observability.logging import get_logger
from gitsplits.services.pingpay import MOCK_STATUS

logger = get_logger(__name__)

PAYMENT_PAGE_URL = "https://pay.hot-labs.org/payment"


class HotPayEngine:
    name = "hotpay"
    protocol = "HOT Partner API"

    def __init__(
        self,
        *,
        jwt: str = "",
        api_base: str = "https://api.hot-labs.org",
        merchant_account: str = "gitsplits.near",
        webhook_url: str = "",
        timeout_seconds: float = 30.0,
        production: bool = False,
        client: httpx.AsyncClient | None = None,
    ):
        self.jwt = jwt
        self.api_base = api_base.rstrip("/")
        self.merchant_account = merchant_account
        self.webhook_url = webhook_url
        self.timeout_seconds = timeout_seconds
        self.production = production
        self._client = client

    @classmethod
    def from_settings(
        cls, settings: Settings, *, client: httpx.AsyncClient | None = None
    ) -> "HotPayEngine":
        return cls(
            jwt=settings.hotpay_jwt,
            api_base=settings.hotpay_api_base,
            merchant_account=settings.hotpay_merchant_account,
            webhook_url=settings.hotpay_webhook_url,
            timeout_seconds=settings.payment_timeout_seconds,
            production=settings.is_production,
            client=client,
        )

    @property
    def configured(self) -> bool:
        return has_credential(self.jwt)

    async def distribute(
        self,
        *,
        split_id: str,
        amount: float,
        token: str,
        recipients: Sequence[Recipient],
    ) -> PaymentReceipt:
        if not self.configured:
            if self.production:
                raise ConfigurationError("Missing HOTPAY_JWT in production mode")
            logger.info("payment_engine_mock", engine=self.name, split_id=split_id)
            return PaymentReceipt(
                tx_hash=f"0x{secrets.token_hex(16)}",
                status=MOCK_STATUS,
                recipients=len(recipients),
                total_amount=amount,
                token=token,
            )

        # The partner item id is the auditable payment reference.
        payload = {
            "merchant_id": self.merchant_account,
            "memo": f"gitsplits-{split_id}-{int(time.time() * 1000)}",
            "header": f"GitSplits payout {split_id}",
            "description": f"Distribution for {len(recipients)} recipients",
            "token": token,
            "amount": amount,
            "webhook_url": self.webhook_url,
        }
        url = f"{self.api_base}/partners/merchant_item"
        headers = {"Authorization": self.jwt}
        try:
            if self._client is not None:
                response = await self._client.post(url, json=payload, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                    response = await client.post(url, json=payload, headers=headers)
        except httpx.HTTPError as exc:
            raise PaymentEngineFailure(self.name, f"HOT Pay request failed: {exc}") from exc

        if response.status_code >= 400:
            raise PaymentEngineFailure(
                self.name,
                f"HOT Pay error ({response.status_code}): {response.text}",
                status_code=response.status_code,
            )

        try:
            result = response.json() if response.content else {}
        except ValueError as exc:
            raise PaymentEngineFailure(self.name, "HOT Pay returned a non-JSON response") from exc
        if not isinstance(result, dict):
            raise PaymentEngineFailure(self.name, "HOT Pay response must be an object")
        item_id = str(result.get("item_id") or result.get("id") or "")
        logger.info("payment_engine_distributed", engine=self.name, split_id=split_id)
        return PaymentReceipt(
            tx_hash=item_id or "0x",
            intent_id=item_id or None,
            payment_url=f"{PAYMENT_PAGE_URL}?item_id={item_id}&amount={amount}" if item_id else None,
            status=str(result.get("status") or "created"),
            recipients=len(recipients),
            total_amount=amount,
            token=token,
        )
