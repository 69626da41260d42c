"""Utility helpers."""

from .identifiers import generate_license_number, generate_medical_record_number
from .masking import mask_email, mask_url

__all__ = [
    "generate_license_number",
    "generate_medical_record_number",
    "mask_email",
    "mask_url",
]
