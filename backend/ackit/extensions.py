# Overview: Flask extension instances for database, migrations, token stores, and the device channel.

from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate

from .services.token_service import TokenStoreRegistry
from .services.device_channel import DeviceChannelRegistry

db = SQLAlchemy()
migrate = Migrate()
token_stores = TokenStoreRegistry()
device_channels = DeviceChannelRegistry()
