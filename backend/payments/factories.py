from pos_backend.config import settlement_settings
from .gateways import CardGateway, SimulatedCardGateway, StripeCardGateway
from .validators import SUPPORTED_CARD_PROVIDERS


class CardGatewayFactory:
    """
    A factory for creating card gateway instances.
    """

    _backends = {
        "simulated": SimulatedCardGateway,
        "stripe": StripeCardGateway,
    }

    @staticmethod
    def get_gateway(provider: str) -> CardGateway:
        """
        Returns the gateway for a card provider. Which implementation serves
        the provider is chosen by the CARD_GATEWAY_BACKEND setting.
        """
        if not provider or provider.upper() not in SUPPORTED_CARD_PROVIDERS:
            raise ValueError(f"Unknown or missing card provider: {provider}")

        backend = settlement_settings.card_gateway_backend
        gateway_class = CardGatewayFactory._backends.get(backend)
        if gateway_class is None:
            raise ValueError(f"Unknown card gateway backend: {backend}")
        return gateway_class()


def get_card_gateway(provider: str) -> CardGateway:
    return CardGatewayFactory.get_gateway(provider)
