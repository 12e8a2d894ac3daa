# Overview: Flask extension instances shared by models, services and the CLI.

from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate

# Bound to the app in create_app(); models import db from here.
db = SQLAlchemy()
migrate = Migrate()
