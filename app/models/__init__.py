# Driver Service — Database Models
# Import all models here for SQLAlchemy discovery

from app.models.driver import Driver, DriverStatus   # noqa
