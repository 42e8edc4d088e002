from wellquest.routers import auth, config, data_source, health, me, quest

__all__ = [
    "auth",
    "config",
    "data_source",
    "health",
    "me",
    "quest",
]
