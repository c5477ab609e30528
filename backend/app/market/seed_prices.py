"""Reference prices and per-symbol parameters for synthetic quotes."""

# Approximate reference prices used by the fallback generator and the
# simulated provider. Anything not listed uses a configurable default.
REFERENCE_PRICES: dict[str, float] = {
    "^GSPC": 5000.00,
    "AAPL": 180.00,
    "GOOGL": 140.00,
    "MSFT": 400.00,
    "TSLA": 250.00,
    "AMZN": 150.00,
    "NVDA": 800.00,
    "META": 300.00,
    "NFLX": 600.00,
    "JPM": 180.00,
    "JNJ": 160.00,
    "PG": 150.00,
    "UNH": 500.00,
    "HD": 350.00,
    "MA": 400.00,
    "V": 250.00,
    "PYPL": 60.00,
    "ADBE": 500.00,
    "CRM": 200.00,
    "NKE": 100.00,
}

# Typical daily volume for the reference symbols (shares / index units)
REFERENCE_VOLUMES: dict[str, int] = {
    "^GSPC": 3_500_000_000,
    "AAPL": 55_000_000,
    "GOOGL": 25_000_000,
    "MSFT": 22_000_000,
    "TSLA": 100_000_000,
    "AMZN": 40_000_000,
    "NVDA": 45_000_000,
    "META": 15_000_000,
    "NFLX": 4_000_000,
}

# Annualized volatility for the simulated provider
VOLATILITY: dict[str, float] = {
    "^GSPC": 0.15,
    "TSLA": 0.50,  # High volatility
    "NVDA": 0.40,
    "META": 0.30,
    "NFLX": 0.35,
    "JPM": 0.18,
    "JNJ": 0.15,  # Defensive
    "PG": 0.14,  # Defensive
    "V": 0.17,
    "MA": 0.18,
    "PYPL": 0.40,
}

DEFAULT_VOLATILITY = 0.25
DEFAULT_DRIFT = 0.05
