"""Concrete adapters for HTTP services, storage, audio and notifications."""
