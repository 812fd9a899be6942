"""FundWars — private-equity world simulation and Investment Committee engine."""

__version__ = "1.0.0"
