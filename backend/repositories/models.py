"""
SQLAlchemy ORM models for persistence.
"""
from sqlalchemy import Column, Float, Integer, JSON, String

from db import Base


class DestinationORM(Base):
    __tablename__ = "popular_destinations"

    id = Column(String, primary_key=True, index=True)
    name = Column(String, nullable=False, index=True)
    name_normalized = Column(String, nullable=False, index=True)
    display_name = Column(String, nullable=False)
    category = Column(String, nullable=False, index=True)
    type = Column(String, nullable=False, index=True)
    country = Column(String, nullable=True)
    region = Column(String, nullable=True)
    city = Column(String, nullable=True)
    lat = Column(Float, nullable=False)
    lon = Column(Float, nullable=False)
    importance = Column(Float, nullable=False, default=0.0)
    place_rank = Column(Integer, nullable=False, default=30)
    boundingbox = Column(JSON, nullable=True)


class AirportORM(Base):
    __tablename__ = "airports"

    id = Column(String, primary_key=True, index=True)
    name = Column(String, nullable=False)
    city = Column(String, nullable=True)
    country_name = Column(String, nullable=True)
    iata_code = Column(String, nullable=True, index=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
