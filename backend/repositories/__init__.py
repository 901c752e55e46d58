from .destinations import DestinationsRepository, SqlDestinationSource
from .airports import AirportsRepository
from . import models

__all__ = ["DestinationsRepository", "SqlDestinationSource", "AirportsRepository", "models"]
