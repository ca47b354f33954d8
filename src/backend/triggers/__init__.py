# Importing a trigger module registers its handlers.
from src.backend.triggers import geocode_address  # noqa: F401
