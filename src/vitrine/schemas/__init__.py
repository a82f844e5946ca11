"""Pydantic models for endpoint arguments.

Learn: Responses are consumed as-is (plain dicts; the backend owns those
shapes), but everything we *send* is validated first. A bad status or a
negative refund fails here, before any request is made.
"""
