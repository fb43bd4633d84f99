"""External market data: DEX pools and the TON price."""
