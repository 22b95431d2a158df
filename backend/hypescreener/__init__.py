"""HypeScreener: ranks freshly created Solana tokens by hype."""

__version__ = "1.0.0"
