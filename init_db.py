# init_db.py
import logging

import psycopg

from db import DATABASE_URL

logger = logging.getLogger(__name__)

# Schema bootstrap. IF NOT EXISTS keeps it safe to run on every start.
INIT_SQL = """
-- 1. users (buyers and sellers share one table)
CREATE TABLE IF NOT EXISTS users (
    id SERIAL PRIMARY KEY,
    email VARCHAR(255) NOT NULL UNIQUE,
    username VARCHAR(100) NOT NULL UNIQUE,
    password_hash VARCHAR(255) NOT NULL,
    name VARCHAR(255),
    avatar VARCHAR(500),
    bio TEXT,
    location VARCHAR(255),
    phone VARCHAR(50),
    website VARCHAR(255),
    years_experience INT,
    created_at TIMESTAMPTZ DEFAULT NOW(),
    updated_at TIMESTAMPTZ DEFAULT NOW()
);

-- 2. services (listings)
CREATE TABLE IF NOT EXISTS services (
    id SERIAL PRIMARY KEY,
    title VARCHAR(255) NOT NULL,
    description TEXT NOT NULL,
    price NUMERIC(10, 2) NOT NULL,
    category VARCHAR(100) NOT NULL,
    seller_id INT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    rating NUMERIC(2, 1) NOT NULL DEFAULT 0,   -- cached average of reviews.rating
    reviews_count INT NOT NULL DEFAULT 0,      -- cached COUNT(reviews)
    image VARCHAR(500) NOT NULL DEFAULT '',
    created_at TIMESTAMPTZ DEFAULT NOW(),
    updated_at TIMESTAMPTZ DEFAULT NOW()
);

-- 3. service_gallery (extra images shown on the detail page)
CREATE TABLE IF NOT EXISTS service_gallery (
    id SERIAL PRIMARY KEY,
    service_id INT NOT NULL REFERENCES services(id) ON DELETE CASCADE,
    image_url VARCHAR(500) NOT NULL,
    caption VARCHAR(255),
    display_order INT NOT NULL DEFAULT 0
);

-- 4. reviews
CREATE TABLE IF NOT EXISTS reviews (
    id SERIAL PRIMARY KEY,
    user_id INT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    service_id INT NOT NULL REFERENCES services(id) ON DELETE CASCADE,
    rating INT NOT NULL CHECK (rating BETWEEN 1 AND 5),
    comment TEXT,
    created_at TIMESTAMPTZ DEFAULT NOW()
);

-- 5. orders (schema only, no route writes here yet)
CREATE TABLE IF NOT EXISTS orders (
    id SERIAL PRIMARY KEY,
    user_id INT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    service_id INT NOT NULL REFERENCES services(id) ON DELETE CASCADE,
    quantity INT NOT NULL DEFAULT 1,
    total NUMERIC(10, 2) NOT NULL,
    status VARCHAR(50) NOT NULL DEFAULT 'pending',
    created_at TIMESTAMPTZ DEFAULT NOW()
);

CREATE INDEX IF NOT EXISTS idx_services_seller ON services(seller_id);
CREATE INDEX IF NOT EXISTS idx_services_created_at ON services(created_at DESC);
CREATE INDEX IF NOT EXISTS idx_gallery_service ON service_gallery(service_id, display_order);
CREATE INDEX IF NOT EXISTS idx_reviews_service ON reviews(service_id);
"""

# Profile columns added after the first schema shipped.
# Older databases get them back-filled by init_database().
USER_PROFILE_COLUMNS = {
    "name": "VARCHAR(255)",
    "bio": "TEXT",
    "location": "VARCHAR(255)",
    "phone": "VARCHAR(50)",
    "website": "VARCHAR(255)",
    "years_experience": "INT",
    "updated_at": "TIMESTAMPTZ DEFAULT NOW()",
}


def _column_exists(cur, table: str, column: str) -> bool:
    cur.execute(
        "SELECT 1 FROM information_schema.columns WHERE table_name = %s AND column_name = %s",
        (table, column),
    )
    return cur.fetchone() is not None


def init_database(conninfo: str = DATABASE_URL) -> bool:
    """
    Create the tables and back-fill missing profile columns.

    Returns False (after logging) when the database is unreachable so the
    API can still start and report the problem through /api/health.
    """
    try:
        logger.info("Checking database schema...")
        # Plain sync connection: this runs once, before the pool exists
        with psycopg.connect(conninfo) as conn:
            with conn.cursor() as cur:
                cur.execute(INIT_SQL)

                for column, ddl in USER_PROFILE_COLUMNS.items():
                    if not _column_exists(cur, "users", column):
                        logger.info("--> users table is missing %s, adding it", column)
                        cur.execute(f"ALTER TABLE users ADD COLUMN {column} {ddl}")

                if not _column_exists(cur, "services", "reviews_count"):
                    logger.info("--> services table is missing reviews_count, adding it")
                    cur.execute("ALTER TABLE services ADD COLUMN reviews_count INT NOT NULL DEFAULT 0")

            conn.commit()
        logger.info("Database schema is up to date")
        return True
    except psycopg.Error:
        logger.exception("Database initialisation failed")
        return False


if __name__ == "__main__":
    from logging_config import setup_logging

    setup_logging()
    init_database()
