"""Partner wallet: hierarchical partner balance transfer service."""

__version__ = "0.1.0"
