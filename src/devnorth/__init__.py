"""DevNorth — user registration/login and competency CRUD backend.

The interesting part lives in three leaf components: the bcrypt password
hasher, the multi-key JWT token service, and the sliding-window rate
limiter. Everything else maps HTTP requests to SQL and back.
"""

__version__ = "0.1.0"
