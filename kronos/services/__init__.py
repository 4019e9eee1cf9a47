"""External providers: market data and generative classification."""
