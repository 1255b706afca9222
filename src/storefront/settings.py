import os
from dotenv import load_dotenv

load_dotenv()

POSTGRES_DB = os.getenv("POSTGRES_DB", "storefront")
POSTGRES_USER = os.getenv("POSTGRES_USER", "storefront")
POSTGRES_PASSWORD = os.getenv("POSTGRES_PASSWORD", "storefrontpass")
POSTGRES_HOST = os.getenv("POSTGRES_HOST", "postgres")
POSTGRES_PORT = os.getenv("POSTGRES_PORT", "5432")

REDIS_HOST = os.getenv("REDIS_HOST", "redis")
REDIS_PORT = os.getenv("REDIS_PORT", "6379")

JWT_SECRET = os.getenv("JWT_SECRET", "devsecret")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))

SQLALCHEMY_DATABASE_URL = os.getenv("DATABASE_URL") or (
    f"postgresql+psycopg2://{POSTGRES_USER}:{POSTGRES_PASSWORD}@{POSTGRES_HOST}:{POSTGRES_PORT}/{POSTGRES_DB}"
)

REDIS_URL = os.getenv("REDIS_URL", f"redis://{REDIS_HOST}:{REDIS_PORT}/0")

# Order placement transaction budget (lock wait / whole transaction)
ORDER_TX_LOCK_TIMEOUT_MS = int(os.getenv("ORDER_TX_LOCK_TIMEOUT_MS", "10000"))
ORDER_TX_TIMEOUT_MS = int(os.getenv("ORDER_TX_TIMEOUT_MS", "20000"))

STATS_CACHE_TTL_SECONDS = int(os.getenv("STATS_CACHE_TTL_SECONDS", "30"))
STATS_CACHE_BACKEND = os.getenv("STATS_CACHE_BACKEND", "memory").lower()
STATS_WARM_ON_WRITE = os.getenv("STATS_WARM_ON_WRITE", "true").lower() not in ("false", "0", "no")

DOMAIN_VERIFY_TIMEOUT_SECONDS = float(os.getenv("DOMAIN_VERIFY_TIMEOUT_SECONDS", "5"))
