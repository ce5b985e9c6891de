import os

# ----------------------------------------------------------------------------
# Database
# ----------------------------------------------------------------------------
DATABASE_URL = os.getenv("DATABASE_URL")
DATABASE_NAME = os.getenv("DATABASE_NAME")

# ----------------------------------------------------------------------------
# Security
# ----------------------------------------------------------------------------
SECRET_KEY = os.getenv("JWT_SECRET", "super-secret-key-change")
ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 60 * 24))

ADMIN_EMAIL = os.getenv("ADMIN_EMAIL")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD")
ADMIN_NAME = os.getenv("ADMIN_NAME", "Administrator")

# ----------------------------------------------------------------------------
# Booking
# ----------------------------------------------------------------------------
SLOT_OPEN_HOUR = int(os.getenv("SLOT_OPEN_HOUR", 8))
SLOT_CLOSE_HOUR = int(os.getenv("SLOT_CLOSE_HOUR", 20))
SLOT_INTERVAL_HOURS = int(os.getenv("SLOT_INTERVAL_HOURS", 2))
SLOT_PRICE = float(os.getenv("SLOT_PRICE", 50))
BOOKING_WINDOW_DAYS = int(os.getenv("BOOKING_WINDOW_DAYS", 7))

# reject | allow
BOOKING_CONFLICT_POLICY = os.getenv("BOOKING_CONFLICT_POLICY", "reject")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
