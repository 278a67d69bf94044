import os

# Database configuration
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./storefront.db")
SQL_ECHO = os.getenv("SQL_ECHO", "false").lower() in ("1", "true", "yes")

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Insert the default category set on startup when the table is empty
SEED_CATEGORIES = os.getenv("SEED_CATEGORIES", "true").lower() in ("1", "true", "yes")

DEFAULT_CATEGORIES = [
    "Geography",
    "Global Politics",
    "Map",
    "Non-Fiction",
    "Science",
    "Physics",
    "Genetics",
    "Computers",
    "Software Development",
    "Programming",
    "Artificial Intelligence",
    "Technology",
]
