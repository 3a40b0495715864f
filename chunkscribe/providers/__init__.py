"""Chat provider adapters: each exposes `async generate(messages, *, timeout, client) -> str`."""
