# (c) Copyright Datacraft, 2026
"""Out-of-band delivery channels for SMS/email codes."""
import abc
import logging

from mfa_core.utils import mask_destination

logger = logging.getLogger(__name__)


class DeliveryChannel(abc.ABC):
	"""Transmits a one-time code to a phone number or email address.

	All channels report failure by returning False; the issuer does not
	retry.
	"""

	@abc.abstractmethod
	def send(self, destination: str, code: str) -> bool: ...


class LoggingChannel(DeliveryChannel):
	"""Channel for development setups.

	Logs the (masked) destination instead of sending anything.
	"""

	def send(self, destination: str, code: str) -> bool:
		logger.info(f"[MOCK DELIVERY] code dispatched to {mask_destination(destination)}")
		return True
