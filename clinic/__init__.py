"""
Clinic Portal

FastAPI backend for a clinic: doctor registration and admin approval,
session-gated doctor and patient areas, and appointment confirmation with
patient email notification.
"""

__version__ = "1.0.0"
