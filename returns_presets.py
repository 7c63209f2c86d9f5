# Historical nominal annual returns (%) by time horizon in years.
# Each horizon lists one figure per asset, in ASSET_NAMES order; allocations
# refer to assets by their position in that list.

ASSET_NAMES = [
    "Tel Aviv 35",
    "S&P 500",
    "NASDAQ",
    "Government Bonds",
    "Corporate Bonds",
    "Real Estate",
    "Gold",
    "Commodities",
]

HORIZONS = (5, 10, 15, 20, 25, 30)

HISTORICAL_RETURNS = {
    5:  [8.2, 11.3, 13.1, 3.8, 5.2, 6.5, 4.1, 3.9],
    10: [7.8, 10.9, 12.7, 4.2, 5.8, 7.1, 5.2, 4.5],
    15: [7.5, 10.5, 11.8, 4.5, 6.1, 7.3, 5.8, 5.1],
    20: [7.2, 10.0, 11.2, 4.8, 6.4, 7.5, 6.2, 5.4],
    25: [6.9, 9.7, 10.8, 5.0, 6.6, 7.6, 6.4, 5.6],
    30: [6.7, 9.5, 10.5, 5.2, 6.8, 7.8, 6.6, 5.8],
}

# Risk tolerance tiers scale the expected return.
RISK_SCENARIOS = {
    "veryConservative": {"multiplier": 0.7, "name": "Very Conservative"},
    "conservative": {"multiplier": 0.85, "name": "Conservative"},
    "moderate": {"multiplier": 1.0, "name": "Moderate"},
    "aggressive": {"multiplier": 1.15, "name": "Aggressive"},
    "veryAggressive": {"multiplier": 1.3, "name": "Very Aggressive"},
}

# Annual volatility (%, one standard deviation) used by the Monte Carlo paths.
ASSET_VOLATILITY = {
    "pension": 12.0,
    "training_fund": 10.0,
    "personal_portfolio": 16.0,
    "real_estate": 14.0,
    "crypto": 60.0,
    "inflation": 1.5,
}

# Yearly economic regimes. Each multiplies the drawn return of the asset
# classes that follow it; probabilities sum to 1.
ECONOMIC_REGIMES = {
    "recession": {"probability": 0.15, "stocks": -0.2, "bonds": 1.1, "real_estate": -0.1, "inflation": 0.5},
    "expansion": {"probability": 0.65, "stocks": 1.0, "bonds": 1.0, "real_estate": 1.0, "inflation": 1.0},
    "boom": {"probability": 0.15, "stocks": 1.5, "bonds": 0.8, "real_estate": 1.3, "inflation": 1.2},
    "stagflation": {"probability": 0.05, "stocks": 0.3, "bonds": -0.2, "real_estate": 0.8, "inflation": 2.0},
}

# Which regime multiplier each asset follows.
REGIME_EXPOSURE = {
    "pension": "stocks",
    "training_fund": "bonds",
    "personal_portfolio": "stocks",
    "real_estate": "real_estate",
    "crypto": "stocks",
}
