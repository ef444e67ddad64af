# repository.py
import logging

from fastapi import Depends
from psycopg import AsyncConnection
from psycopg.errors import UniqueViolation

from db import getDB
from query_builder import SearchFilters, build_service_search

logger = logging.getLogger(__name__)

USER_COLUMNS = """
    id, email, username, name, avatar, bio, location, phone, website,
    years_experience, created_at
"""

SERVICE_CARD_SELECT = """
    SELECT s.*, u.username AS seller_username, u.avatar AS seller_avatar
    FROM services s
    JOIN users u ON s.seller_id = u.id
"""


class DuplicateUserError(Exception):
    """Email or username already belongs to another account."""

    def __init__(self, field: str):
        self.field = field
        super().__init__(f"{field} already registered")


def _duplicate_field(error: UniqueViolation) -> str:
    constraint = getattr(error.diag, "constraint_name", None) or ""
    if "username" in constraint:
        return "username"
    return "email"


class MarketplaceRepository:
    """
    All SQL used by the API, bound to one pooled connection.

    Routes never build SQL themselves; they get an instance through the
    `get_repository` dependency (tests swap it for an in-memory fake).
    """

    def __init__(self, conn: AsyncConnection):
        self.conn = conn

    # =========================================================
    # Users
    # =========================================================

    async def get_user_by_id(self, user_id: int) -> dict | None:
        async with self.conn.cursor() as cur:
            await cur.execute(f"SELECT {USER_COLUMNS} FROM users WHERE id = %s", (user_id,))
            return await cur.fetchone()

    async def get_user_by_email(self, email: str) -> dict | None:
        """Includes password_hash, for login only."""
        async with self.conn.cursor() as cur:
            await cur.execute(
                f"SELECT {USER_COLUMNS}, password_hash FROM users WHERE LOWER(email) = LOWER(%s)",
                (email,),
            )
            return await cur.fetchone()

    async def find_user_conflict(self, email: str, username: str, exclude_id: int | None = None) -> str | None:
        """Return "email" / "username" when another account already uses it."""
        async with self.conn.cursor() as cur:
            await cur.execute(
                """
                SELECT LOWER(email) = LOWER(%(email)s) AS email_taken
                FROM users
                WHERE (LOWER(email) = LOWER(%(email)s) OR username = %(username)s)
                  AND (%(exclude_id)s::int IS NULL OR id <> %(exclude_id)s::int)
                LIMIT 1
                """,
                {"email": email, "username": username, "exclude_id": exclude_id},
            )
            row = await cur.fetchone()
        if not row:
            return None
        return "email" if row["email_taken"] else "username"

    async def create_user(
        self, email: str, username: str, password_hash: str, name: str | None = None, avatar: str | None = None
    ) -> dict:
        try:
            async with self.conn.transaction():
                async with self.conn.cursor() as cur:
                    await cur.execute(
                        f"""
                        INSERT INTO users (email, username, password_hash, name, avatar)
                        VALUES (%s, %s, %s, %s, %s)
                        RETURNING {USER_COLUMNS}
                        """,
                        (email, username, password_hash, name, avatar),
                    )
                    return await cur.fetchone()
        except UniqueViolation as e:
            # Lost a race with a concurrent registration
            raise DuplicateUserError(_duplicate_field(e)) from e

    async def update_profile(self, user_id: int, fields: dict) -> dict | None:
        if not fields:
            return await self.get_user_by_id(user_id)

        assignments = ", ".join(f"{column} = %({column})s" for column in fields)
        try:
            async with self.conn.transaction():
                async with self.conn.cursor() as cur:
                    await cur.execute(
                        f"""
                        UPDATE users SET {assignments}, updated_at = NOW()
                        WHERE id = %(user_id)s
                        RETURNING {USER_COLUMNS}
                        """,
                        {**fields, "user_id": user_id},
                    )
                    return await cur.fetchone()
        except UniqueViolation as e:
            raise DuplicateUserError(_duplicate_field(e)) from e

    async def update_avatar(self, user_id: int, avatar: str) -> dict | None:
        async with self.conn.cursor() as cur:
            await cur.execute(
                f"UPDATE users SET avatar = %s, updated_at = NOW() WHERE id = %s RETURNING {USER_COLUMNS}",
                (avatar, user_id),
            )
            return await cur.fetchone()

    # =========================================================
    # Services
    # =========================================================

    async def search_services(self, filters: SearchFilters) -> list[dict]:
        query = build_service_search(filters)
        logger.debug("Service search with %d filter clause(s)", len(query.clauses))
        async with self.conn.cursor() as cur:
            await cur.execute(query.sql, query.params)
            return await cur.fetchall()

    async def get_service_card(self, service_id: int) -> dict | None:
        async with self.conn.cursor() as cur:
            await cur.execute(SERVICE_CARD_SELECT + " WHERE s.id = %s", (service_id,))
            return await cur.fetchone()

    async def get_service(self, service_id: int) -> dict | None:
        """Service joined with its seller's full profile."""
        async with self.conn.cursor() as cur:
            await cur.execute(
                """
                SELECT s.*,
                       u.username AS seller_username,
                       u.name AS seller_name,
                       u.avatar AS seller_avatar,
                       u.bio AS seller_bio,
                       u.location AS seller_location,
                       u.phone AS seller_phone,
                       u.website AS seller_website,
                       u.years_experience AS seller_years_experience
                FROM services s
                JOIN users u ON s.seller_id = u.id
                WHERE s.id = %s
                """,
                (service_id,),
            )
            return await cur.fetchone()

    async def get_service_gallery(self, service_id: int) -> list[dict]:
        async with self.conn.cursor() as cur:
            await cur.execute(
                """
                SELECT id, image_url, caption, display_order
                FROM service_gallery
                WHERE service_id = %s
                ORDER BY display_order, id
                """,
                (service_id,),
            )
            return await cur.fetchall()

    async def get_service_reviews(self, service_id: int) -> list[dict]:
        async with self.conn.cursor() as cur:
            await cur.execute(
                """
                SELECT r.id, r.rating, r.comment, r.created_at,
                       u.username AS user_username, u.name AS user_name, u.avatar AS user_avatar
                FROM reviews r
                JOIN users u ON r.user_id = u.id
                WHERE r.service_id = %s
                ORDER BY r.created_at DESC, r.id DESC
                """,
                (service_id,),
            )
            return await cur.fetchall()

    async def get_service_owner(self, service_id: int) -> int | None:
        async with self.conn.cursor() as cur:
            await cur.execute("SELECT seller_id FROM services WHERE id = %s", (service_id,))
            row = await cur.fetchone()
        return row["seller_id"] if row else None

    async def create_service(self, seller_id: int, fields: dict) -> dict:
        async with self.conn.cursor() as cur:
            await cur.execute(
                """
                INSERT INTO services (title, description, price, category, image, seller_id)
                VALUES (%(title)s, %(description)s, %(price)s, %(category)s, %(image)s, %(seller_id)s)
                RETURNING id
                """,
                {**fields, "image": fields.get("image") or "", "seller_id": seller_id},
            )
            created = await cur.fetchone()
        return await self.get_service_card(created["id"])

    async def update_service(self, service_id: int, fields: dict) -> dict | None:
        if fields:
            assignments = ", ".join(f"{column} = %({column})s" for column in fields)
            async with self.conn.cursor() as cur:
                await cur.execute(
                    f"UPDATE services SET {assignments}, updated_at = NOW() WHERE id = %(service_id)s",
                    {**fields, "service_id": service_id},
                )
        return await self.get_service_card(service_id)

    async def delete_service(self, service_id: int) -> bool:
        async with self.conn.cursor() as cur:
            await cur.execute("DELETE FROM services WHERE id = %s RETURNING id", (service_id,))
            return await cur.fetchone() is not None

    # =========================================================
    # Sellers
    # =========================================================

    async def get_seller_by_username(self, username: str) -> dict | None:
        async with self.conn.cursor() as cur:
            await cur.execute(f"SELECT {USER_COLUMNS} FROM users WHERE username = %s", (username,))
            return await cur.fetchone()

    async def get_seller_stats(self, seller_id: int) -> dict:
        async with self.conn.cursor() as cur:
            await cur.execute(
                """
                SELECT COUNT(DISTINCT s.id) AS total_services,
                       COUNT(r.id) AS total_reviews,
                       COALESCE(AVG(r.rating), AVG(s.rating), 0) AS avg_rating
                FROM services s
                LEFT JOIN reviews r ON r.service_id = s.id
                WHERE s.seller_id = %s
                """,
                (seller_id,),
            )
            return await cur.fetchone()

    async def get_seller_services(self, seller_id: int) -> list[dict]:
        async with self.conn.cursor() as cur:
            await cur.execute(
                "SELECT * FROM services WHERE seller_id = %s ORDER BY created_at DESC, id DESC",
                (seller_id,),
            )
            return await cur.fetchall()

    # =========================================================
    # Reviews
    # =========================================================

    async def add_review(self, service_id: int, user_id: int, rating: int, comment: str | None) -> dict:
        """
        Insert a review and refresh the service's cached rating / reviews_count.

        Both statements commit together, so the cached values never drift
        from the reviews written through the API.
        """
        async with self.conn.transaction():
            async with self.conn.cursor() as cur:
                await cur.execute(
                    """
                    INSERT INTO reviews (user_id, service_id, rating, comment)
                    VALUES (%s, %s, %s, %s)
                    RETURNING id
                    """,
                    (user_id, service_id, rating, comment),
                )
                created = await cur.fetchone()

                await cur.execute(
                    """
                    UPDATE services SET
                        rating = COALESCE(
                            (SELECT ROUND(AVG(rating)::numeric, 1) FROM reviews WHERE service_id = %(id)s), 0),
                        reviews_count = (SELECT COUNT(*) FROM reviews WHERE service_id = %(id)s),
                        updated_at = NOW()
                    WHERE id = %(id)s
                    """,
                    {"id": service_id},
                )

                await cur.execute(
                    """
                    SELECT r.id, r.rating, r.comment, r.created_at,
                           u.username AS user_username, u.name AS user_name, u.avatar AS user_avatar
                    FROM reviews r
                    JOIN users u ON r.user_id = u.id
                    WHERE r.id = %s
                    """,
                    (created["id"],),
                )
                return await cur.fetchone()


async def get_repository(conn: AsyncConnection = Depends(getDB)) -> MarketplaceRepository:
    return MarketplaceRepository(conn)
