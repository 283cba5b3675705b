# Database models
from greenhouse.models.prediction import PredictionData
from greenhouse.models.records import ForecastPoint, Reading, TimeRange
from greenhouse.models.sensor_data import SensorData

__all__ = ["ForecastPoint", "PredictionData", "Reading", "SensorData", "TimeRange"]
