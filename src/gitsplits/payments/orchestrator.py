"""Payment engine selection and failover.

The chain-native engine is preferred for the native token or when the user
names it explicitly. Otherwise the cross-chain intents engine goes first and a
failure is retried once on the chain-native engine, if it has credentials.
Engine calls are strictly sequential so one payout is never submitted twice
in parallel.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Sequence

from gitsplits.backends.protocols import PaymentEngine, PaymentReceipt, Recipient
from gitsplits.errors import PaymentEngineFailure
from gitsplits.observability.logging import get_logger

logger = get_logger(__name__)

EngineTag = Literal["pingpay", "hotpay", "hotpay_fallback"]

ENGINE_HINT = "hotpay"

PROTOCOLS: dict[str, str] = {
    "pingpay": "NEAR Intents & Chain Signatures",
    "hotpay": "HOT Partner API",
}

PROVIDER_NAMES: dict[str, str] = {
    "pingpay": "Ping Pay",
    "hotpay": "HOT Pay",
    "hotpay_fallback": "HOT Pay (Ping Pay fallback)",
}


@dataclass(frozen=True)
class DistributionRequest:
    split_id: str
    amount: float
    token: str
    recipients: Sequence[Recipient]


@dataclass(frozen=True)
class DistributionResult:
    tx_hash: str
    status: str | None
    recipients: int
    total_amount: float
    token: str
    engine: EngineTag
    protocol: str
    intent_id: str | None = None
    payment_url: str | None = None

    @property
    def provider_name(self) -> str:
        return PROVIDER_NAMES[self.engine]


def _result(receipt: PaymentReceipt, engine: EngineTag, protocol: str) -> DistributionResult:
    return DistributionResult(
        tx_hash=receipt.tx_hash,
        status=receipt.status,
        recipients=receipt.recipients,
        total_amount=receipt.total_amount,
        token=receipt.token,
        engine=engine,
        protocol=protocol,
        intent_id=receipt.intent_id,
        payment_url=receipt.payment_url,
    )


class PaymentOrchestrator:
    def __init__(self, *, pingpay: PaymentEngine, hotpay: PaymentEngine, native_token: str = "NEAR"):
        self.pingpay = pingpay
        self.hotpay = hotpay
        self.native_token = native_token.upper()

    def prefers_native_engine(self, token: str, hint_text: str = "") -> bool:
        if (token or "").upper() == self.native_token:
            return True
        return ENGINE_HINT in (hint_text or "").lower()

    async def _call(self, engine: PaymentEngine, request: DistributionRequest) -> PaymentReceipt:
        return await engine.distribute(
            split_id=request.split_id,
            amount=request.amount,
            token=request.token,
            recipients=request.recipients,
        )

    async def distribute(
        self, request: DistributionRequest, *, hint_text: str = ""
    ) -> DistributionResult:
        if self.prefers_native_engine(request.token, hint_text):
            receipt = await self._call(self.hotpay, request)
            logger.info("distribution_completed", engine="hotpay", split_id=request.split_id)
            return _result(receipt, "hotpay", PROTOCOLS["hotpay"])

        try:
            receipt = await self._call(self.pingpay, request)
        except Exception as primary_error:
            if not self.hotpay.configured:
                raise
            logger.warning(
                "distribution_failover",
                split_id=request.split_id,
                error=str(primary_error),
            )
            try:
                receipt = await self._call(self.hotpay, request)
            except PaymentEngineFailure:
                raise
            except Exception as fallback_error:
                raise PaymentEngineFailure("hotpay", str(fallback_error)) from fallback_error
            logger.info(
                "distribution_completed", engine="hotpay_fallback", split_id=request.split_id
            )
            return _result(receipt, "hotpay_fallback", PROTOCOLS["hotpay"])

        logger.info("distribution_completed", engine="pingpay", split_id=request.split_id)
        return _result(receipt, "pingpay", PROTOCOLS["pingpay"])
