"""Pydantic models for bus messages and Socket.IO payloads."""
