"""Pure domain rules (no storage or HTTP)."""
