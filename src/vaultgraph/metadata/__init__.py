"""Vault document metadata: parsed records and the providers that load them."""
