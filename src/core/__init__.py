"""Core domain package for smsforward.

Core contains normalization, reassembly, filtering, formatting and delivery
logic without any SMTP, storage or transport-specific code, keeping the
business logic portable.
"""
