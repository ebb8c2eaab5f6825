"""
Integrations Package

External service integrations:
- Telegram Bot API (document store, notifications)
- Market data providers (DexScreener, GeckoTerminal)
"""
