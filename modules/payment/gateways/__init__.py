"""
Payment Gateways
=================
A gateway opens an order on the provider's side (create_payment) and later
confirms the checkout callback (verify_payment). Gateways register
themselves by name on import; PaymentService picks the one named by
ACTIVE_GATEWAY.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

logger = logging.getLogger("loopcraft.gateway")


@dataclass
class GatewayPaymentRequest:
    amount_minor: int                       # paise
    currency: str
    receipt: str                            # our reference, shown in the provider dashboard
    notes: Dict[str, str] = field(default_factory=dict)


@dataclass
class GatewayCreateResult:
    success: bool
    gateway_order_id: Optional[str] = None  # becomes Order.order_id
    amount_minor: Optional[int] = None      # as echoed back by the provider
    currency: Optional[str] = None
    error_message: Optional[str] = None


@dataclass
class GatewayVerifyResult:
    success: bool
    payment_id: Optional[str] = None
    error_message: Optional[str] = None


class BaseGateway:
    name: str = ""
    label: str = ""

    @property
    def is_configured(self) -> bool:
        """Credentials present. Unconfigured gateways still register but cannot verify."""
        return True

    def create_payment(self, req: GatewayPaymentRequest) -> GatewayCreateResult:
        raise NotImplementedError

    def verify_payment(self, params: Dict[str, Any]) -> GatewayVerifyResult:
        """`params`: order_id, payment_id, signature from the checkout callback."""
        raise NotImplementedError


_GATEWAYS: Dict[str, BaseGateway] = {}


def register_gateway(gw: BaseGateway):
    if gw.name in _GATEWAYS:
        logger.warning(f"Gateway '{gw.name}' registered twice; keeping the latest")
    _GATEWAYS[gw.name] = gw
    if not gw.is_configured:
        logger.warning(f"Gateway '{gw.name}' registered without credentials")


def get_gateway(name: str) -> Optional[BaseGateway]:
    return _GATEWAYS.get((name or "").strip().lower())


def get_all_gateway_names() -> List[str]:
    return sorted(_GATEWAYS)
