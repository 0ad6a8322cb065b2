"""
Core utilities shared across the LinkLounge API.

Configuration, error taxonomy, password hashing, signed tokens, the SMTP
mailer, the image storage adapter and the login rate limiter live here.
Services and routers depend on these primitives instead of reading the
environment or talking to providers directly.
"""
