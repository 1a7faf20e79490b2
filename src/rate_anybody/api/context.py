"""Per-application state shared by the route modules."""

import dataclasses
import logging
from dataclasses import dataclass, field

from rate_anybody.config import WALLET_ENV_VAR, RaterConfig
from rate_anybody.submission import SignerSession
from rate_anybody.wallet import Wallet

logger = logging.getLogger(__name__)


@dataclass
class ServiceContext:
    """
    Configuration plus the lazily loaded signer.

    The service never prompts, so submissions always run with interactive
    confirmation switched off regardless of the loaded configuration.
    """

    config: RaterConfig
    wallet_env_var: str = WALLET_ENV_VAR
    _session: SignerSession | None = field(default=None, repr=False)

    def __post_init__(self) -> None:
        self.config = dataclasses.replace(
            self.config,
            submission=dataclasses.replace(
                self.config.submission, interactive_confirmation=False
            ),
        )

    def signer(self) -> SignerSession:
        """Return the signing session, loading the key on first use.

        Raises:
            ConfigurationError: If the key variable is unset or malformed.
        """
        if self._session is None:
            self._session = SignerSession(wallet=Wallet.from_env(self.wallet_env_var))
            logger.info("Service signer ready: %s", self._session.address)
        return self._session
