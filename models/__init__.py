"""Storage singleton shared by the models and the API."""
from models.db_storage import DBStorage

storage = DBStorage()
storage.reload()
