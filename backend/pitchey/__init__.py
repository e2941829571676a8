"""Pitchey health monitoring and alerting engine."""
