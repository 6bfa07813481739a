"""
MediBook

A FastAPI-based service for booking and managing healthcare appointments,
with patient, doctor and admin roles, schedule blocking, waitlists,
emergency requests and medical notes.
"""

__version__ = "1.0.0"
