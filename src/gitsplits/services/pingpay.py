"""Cross-chain intents payment engine (Ping Pay)."""

from __future__ import annotations

import secrets
from typing import Any, Sequence

import httpx

from gitsplits.backends.protocols import PaymentReceipt, Recipient
from gitsplits.config import Settings, has_credential
from gitsplits.errors import ConfigurationError, PaymentEngineFailure
from gitsplits.observability.logging import get_logger

logger = get_logger(__name__)

MOCK_STATUS = "mock"


class PingPayEngine:
    name = "pingpay"
    protocol = "NEAR Intents & Chain Signatures"

    def __init__(
        self,
        *,
        api_key: str = "",
        api_base: str = "https://api.pingpay.io",
        intents_path: str = "/v1/intents",
        auth_mode: str = "",
        timeout_seconds: float = 30.0,
        production: bool = False,
        client: httpx.AsyncClient | None = None,
    ):
        self.api_key = api_key
        self.api_base = api_base.rstrip("/")
        self.intents_path = intents_path
        self.auth_mode = auth_mode.lower()
        self.timeout_seconds = timeout_seconds
        self.production = production
        self._client = client

    @classmethod
    def from_settings(
        cls, settings: Settings, *, client: httpx.AsyncClient | None = None
    ) -> "PingPayEngine":
        return cls(
            api_key=settings.pingpay_api_key,
            api_base=settings.pingpay_api_base,
            intents_path=settings.pingpay_intents_path,
            auth_mode=settings.pingpay_auth_mode,
            timeout_seconds=settings.payment_timeout_seconds,
            production=settings.is_production,
            client=client,
        )

    @property
    def configured(self) -> bool:
        return has_credential(self.api_key)

    def _auth_headers(self) -> dict[str, str]:
        # Publishable keys (pk_...) use their own header unless bearer is forced.
        publishable = self.auth_mode == "publishable" or (
            not self.auth_mode and self.api_key.startswith("pk_")
        )
        if publishable:
            return {"x-publishable-key": self.api_key}
        return {"Authorization": f"Bearer {self.api_key}"}

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
                raise ConfigurationError("Missing PINGPAY_API_KEY in production mode")
            logger.info("payment_engine_mock", engine=self.name, split_id=split_id)
            return PaymentReceipt(
                tx_hash=f"0x{secrets.token_hex(16)}",
                intent_id=f"intent-{secrets.token_hex(4)}",
                status=MOCK_STATUS,
                recipients=len(recipients),
                total_amount=amount,
                token=token,
            )

        payload: dict[str, Any] = {
            "action": "distribute",
            "split_id": split_id,
            "token": token,
            "total_amount": amount,
            "recipients": [
                {"address": r.wallet, "amount": amount * r.percentage / 100} for r in recipients
            ],
        }
        url = f"{self.api_base}{self.intents_path}"
        try:
            if self._client is not None:
                response = await self._client.post(url, json=payload, headers=self._auth_headers())
            else:
                async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                    response = await client.post(url, json=payload, headers=self._auth_headers())
        except httpx.HTTPError as exc:
            raise PaymentEngineFailure(self.name, f"Ping Pay request failed: {exc}") from exc

        if response.status_code >= 400:
            raise PaymentEngineFailure(
                self.name,
                f"Ping Pay error ({response.status_code}): {response.text or response.reason_phrase}",
                status_code=response.status_code,
            )

        try:
            result = response.json() if response.content else {}
        except ValueError as exc:
            raise PaymentEngineFailure(self.name, "Ping Pay returned a non-JSON response") from exc
        if not isinstance(result, dict):
            raise PaymentEngineFailure(self.name, "Ping Pay response must be an object")
        logger.info("payment_engine_distributed", engine=self.name, split_id=split_id)
        return PaymentReceipt(
            tx_hash=str(result.get("transaction_hash") or "0x"),
            intent_id=str(result.get("intent_id") or "") or None,
            status=str(result.get("status") or "pending"),
            recipients=len(recipients),
            total_amount=amount,
            token=token,
        )
