"""Records every fresh store starts with."""

from nexusai.schemas import UserCreate

# Demo account used until real authentication exists
DEMO_USER = UserCreate(
    username="demo",
    password="demo",
    email="demo@nexusai.com",
)
