# (c) Copyright Datacraft, 2026
"""TOTP (Time-based One-Time Password) primitive."""

import base64
import hashlib
import hmac
import io
import secrets
from datetime import datetime

import pyotp
import qrcode

from mfa_core.config import get_settings
from mfa_core.schema import EnrollmentPayload
from mfa_core.utils import utc_now


class TOTPManager:
	"""Generates secrets and evaluates codes against them."""

	def __init__(
		self,
		issuer_name: str | None = None,
		digits: int | None = None,
		interval: int | None = None,
		algorithm: str = "sha1",
	):
		"""Initialize TOTP manager.

		Args:
			issuer_name: Name shown in authenticator apps
			digits: Number of digits in OTP code
			interval: Length of one time step (seconds)
			algorithm: Hash algorithm (sha1, sha256, sha512)
		"""
		settings = get_settings()
		self.issuer_name = issuer_name or settings.totp_issuer
		self.digits = digits or settings.totp_digits
		self.interval = interval or settings.totp_interval
		self.algorithm = algorithm

	def generate_secret(self) -> str:
		"""Generate a new random TOTP secret.

		Returns:
			Base32-encoded secret string
		"""
		# 160 bits, the RFC 4226 recommended length
		random_bytes = secrets.token_bytes(20)
		return base64.b32encode(random_bytes).decode("utf-8").rstrip("=")

	def get_totp(self, secret: str) -> pyotp.TOTP:
		return pyotp.TOTP(
			secret,
			digits=self.digits,
			interval=self.interval,
			digest=getattr(hashlib, self.algorithm),
		)

	def time_step_delta(
		self,
		secret: str,
		code: str,
		for_time: datetime | None = None,
		valid_window: int = 1,
	) -> int | None:
		"""Find the time step a code was generated for.

		Args:
			secret: Base32-encoded secret
			code: Candidate code
			for_time: Verifier's current time
			valid_window: Number of steps to check before/after current

		Returns:
			Offset from the current step (0 is an exact match), or None
			if the code matches no step in the window
		"""
		code = code.replace(" ", "").replace("-", "")
		if not code.isdigit() or len(code) != self.digits:
			return None

		for_time = for_time or utc_now()
		totp = self.get_totp(secret)

		# current step first so an exact match wins
		for offset in sorted(range(-valid_window, valid_window + 1), key=abs):
			if hmac.compare_digest(code, totp.at(for_time, counter_offset=offset)):
				return offset

		return None

	def verify(self, secret: str, code: str, for_time: datetime | None = None) -> bool:
		"""Accept only a code from the current time step."""
		return self.time_step_delta(secret, code, for_time) == 0

	def generate_provisioning_uri(self, secret: str, account_name: str) -> str:
		"""Generate otpauth:// URI for authenticator apps."""
		return self.get_totp(secret).provisioning_uri(
			name=account_name,
			issuer_name=self.issuer_name,
		)

	def generate_qr_code(
		self,
		provisioning_uri: str,
		box_size: int = 10,
		border: int = 4,
	) -> str:
		"""Generate QR code image as base64.

		Args:
			provisioning_uri: otpauth:// URI
			box_size: Size of each QR code box
			border: Border size in boxes

		Returns:
			Base64-encoded PNG image
		"""
		qr = qrcode.QRCode(
			version=1,
			error_correction=qrcode.constants.ERROR_CORRECT_L,
			box_size=box_size,
			border=border,
		)
		qr.add_data(provisioning_uri)
		qr.make(fit=True)

		img = qr.make_image(fill_color="black", back_color="white")

		buffer = io.BytesIO()
		img.save(buffer)
		buffer.seek(0)

		return base64.b64encode(buffer.read()).decode("utf-8")

	def enrollment_payload(self, secret: str, account_name: str) -> EnrollmentPayload:
		uri = self.generate_provisioning_uri(secret, account_name)
		return EnrollmentPayload(
			provisioning_uri=uri,
			qr_code_base64=self.generate_qr_code(uri),
		)

	def get_current_code(self, secret: str, for_time: datetime | None = None) -> str:
		"""Get the TOTP code of the current step (for testing)."""
		return self.get_totp(secret).at(for_time or utc_now())
