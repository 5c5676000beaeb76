"""Network bandwidth testing: TCP receive and socket tuning, paced UDP, TCP statistics, themes."""

__version__ = "0.9.10"