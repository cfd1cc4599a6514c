from .abi import PREDICTION_MARKET_ABI
from .client import PredictionMarketClient

__all__ = ["PREDICTION_MARKET_ABI", "PredictionMarketClient"]
