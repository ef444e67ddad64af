# seed.py
import logging
import random

import psycopg

from db import DATABASE_URL
from init_db import init_database
from security import hash_password

logger = logging.getLogger(__name__)

DEMO_PASSWORD = "password123"

# --- 1. Artisans (sellers) ---
ARTISANS = [
    {
        "email": "marco.orefice@artigiani.it", "username": "marco_orefice", "name": "Marco Benedetti",
        "bio": "Orafo da tre generazioni, lavoro oro e argento con tecniche tradizionali.",
        "location": "Firenze", "phone": "+39 055 123 4567", "website": "marcoorefice.it", "years_experience": 22,
    },
    {
        "email": "sofia.sarta@artigiani.it", "username": "sofia_sarta", "name": "Sofia Rossi",
        "bio": "Sarta su misura, abiti da cerimonia e capi unici.",
        "location": "Milano", "phone": "+39 02 765 4321", "website": "sofiasartoria.it", "years_experience": 15,
    },
    {
        "email": "luca.mobile@artigiani.it", "username": "luca_mobile", "name": "Luca Falegname",
        "bio": "Ebanista, mobili in legno massello progettati su misura.",
        "location": "Bergamo", "phone": "+39 035 222 3344", "website": "lucamobili.it", "years_experience": 18,
    },
    {
        "email": "anna.casa@artigiani.it", "username": "anna_casa", "name": "Anna Ferro",
        "bio": "Oggetti per la casa in ferro battuto e acciaio forgiato.",
        "location": "Brescia", "phone": "+39 030 555 6677", "website": "annaferro.it", "years_experience": 12,
    },
    {
        "email": "pietro.tempo@artigiani.it", "username": "pietro_tempo", "name": "Pietro Cronos",
        "bio": "Orologiaio restauratore, meccanismi d'epoca e da tavolo.",
        "location": "Torino", "phone": "+39 011 888 9900", "website": "pietrocronos.it", "years_experience": 30,
    },
    {
        "email": "giulia.cibo@artigiani.it", "username": "giulia_cibo", "name": "Giulia Sapori",
        "bio": "Salumi e formaggi della tradizione, produzione familiare.",
        "location": "Parma", "phone": "+39 0521 444 555", "website": "giuliasapori.it", "years_experience": 10,
    },
    {
        "email": "davide.attrezzi@artigiani.it", "username": "davide_attrezzi", "name": "Davide Fabbro",
        "bio": "Fabbro, attrezzi da giardino e da falegnameria forgiati a mano.",
        "location": "Trento", "phone": "+39 0461 333 222", "website": "davidefabbro.it", "years_experience": 25,
    },
    {
        "email": "elena.ceramica@artigiani.it", "username": "elena_ceramica", "name": "Elena Ceramista",
        "bio": "Ceramiche e piastrelle dipinte a mano, cotto tradizionale.",
        "location": "Caltagirone", "phone": "+39 0933 111 000", "website": "elenaceramica.it", "years_experience": 14,
    },
]

# --- 2. Services, seller is the username above ---
SERVICES = [
    # Gioielleria
    ("marco_orefice", "Anello di fidanzamento su misura",
     "Creo anelli di fidanzamento unici con diamanti selezionati e metalli preziosi. Ogni pezzo è realizzato "
     "a mano con tecniche tradizionali della gioielleria italiana.",
     2500.00, "Gioielleria", "https://images.unsplash.com/photo-1605100804763-247f67b3557e?w=400"),
    ("marco_orefice", "Collana in argento lavorata a mano",
     "Elegante collana in argento 925 con pendente in pietre semi-preziose. Lavorazione artigianale con "
     "tecniche di filigrana tradizionale.",
     450.00, "Gioielleria", "https://images.unsplash.com/photo-1515562141207-7a88fb7ce338?w=400"),
    # Design di abbigliamento
    ("sofia_sarta", "Abito da sera su misura",
     "Realizzo abiti da sera eleganti e raffinati, completamente su misura. Utilizzo tessuti pregiati e "
     "tecniche sartoriali tradizionali italiane.",
     1800.00, "Design di abbigliamento", "https://images.unsplash.com/photo-1566479179817-c8723ee8a56e?w=400"),
    ("sofia_sarta", "Camicia artigianale in lino",
     "Camicia elegante in lino italiano di alta qualità, tagliata e cucita a mano. Perfetta per ogni "
     "occasione, con dettagli raffinati.",
     280.00, "Design di abbigliamento", "https://images.unsplash.com/photo-1594938392931-1d179134e295?w=400"),
    # Ebanisteria
    ("luca_mobile", "Tavolo da pranzo in legno massello",
     "Tavolo da pranzo realizzato in legno di noce massello, con finitura a mano e gambe tornite. "
     "Dimensioni personalizzabili secondo le vostre esigenze.",
     3200.00, "Ebanisteria", "https://images.unsplash.com/photo-1586023492125-27b2c045efd7?w=400"),
    ("luca_mobile", "Libreria su misura",
     "Libreria modulare in legno di rovere, progettata e realizzata su misura per il vostro spazio. "
     "Ogni ripiano è regolabile e rifinito a mano.",
     2100.00, "Ebanisteria", "https://images.unsplash.com/photo-1507003211169-0a1dd7228f2d?w=400"),
    # Design di oggetti per la casa
    ("anna_casa", "Set di coltelli da cucina forgiati",
     "Set completo di coltelli da cucina forgiati a mano in acciaio al carbonio. Include coltello da chef, "
     "da pane, da verdure e spelucchino.",
     680.00, "Design di oggetti per la casa", "https://images.unsplash.com/photo-1540379008-b9f8f2c6f994?w=400"),
    ("anna_casa", "Lampada da tavolo in ferro battuto",
     "Elegante lampada da tavolo realizzata in ferro battuto con paralume in tessuto naturale. Perfetta "
     "per ambienti rustici ed eleganti.",
     340.00, "Design di oggetti per la casa", "https://images.unsplash.com/photo-1507003211169-0a1dd7228f2d?w=400"),
    # Orologeria
    ("pietro_tempo", "Orologio da tavolo meccanico",
     "Orologio da tavolo con movimento meccanico completamente restaurato e calibrato. Cassa in legno "
     "pregiato con intarsi decorativi.",
     1200.00, "Orologeria", "https://images.unsplash.com/photo-1564466809058-bf4114d55352?w=400"),
    ("pietro_tempo", "Restauro orologio da polso vintage",
     "Servizio professionale di restauro per orologi da polso vintage. Include revisione del movimento, "
     "sostituzione parti usurate e lucidatura cassa.",
     450.00, "Orologeria", "https://images.unsplash.com/photo-1522312346375-d1a52e2b99b3?w=400"),
    # Produzione alimentare
    ("giulia_cibo", "Salumi artigianali della tradizione",
     "Produzione artigianale di salumi tradizionali italiani: prosciutto, salame, pancetta. Stagionatura "
     "naturale e ingredienti selezionati.",
     85.00, "Produzione alimentare", "https://images.unsplash.com/photo-1567171515071-0c8c1d9ae1c7?w=400"),
    ("giulia_cibo", "Formaggi freschi di capra",
     "Formaggi freschi prodotti con latte di capra locale, seguendo ricette tradizionali familiari. "
     "Disponibili diverse stagionature.",
     65.00, "Produzione alimentare", "https://images.unsplash.com/photo-1486297678162-eb2a19b0a32d?w=400"),
    # Fabbricazione di attrezzi
    ("davide_attrezzi", "Attrezzi da giardino forgiati",
     "Set di attrezzi da giardino forgiati a mano: zappa, vanga, rastrello. Manici in legno di frassino "
     "stagionato, ferro battuto di qualità.",
     320.00, "Fabbricazione di attrezzi", "https://images.unsplash.com/photo-1416879595882-3373a0480b5b?w=400"),
    ("davide_attrezzi", "Utensili da falegnameria tradizionali",
     "Creazione e restauro di utensili da falegnameria tradizionali: pialle, scalpelli, seghe. "
     "Lavorazione secondo antiche tecniche artigianali.",
     150.00, "Fabbricazione di attrezzi", "https://images.unsplash.com/photo-1521100730256-28f30f6bb78b?w=400"),
    # Fabbricazione di piastrelle
    ("elena_ceramica", "Piastrelle in ceramica dipinte a mano",
     "Piastrelle decorative in ceramica dipinte completamente a mano con motivi tradizionali italiani. "
     "Perfette per cucine e bagni di pregio.",
     45.00, "Fabbricazione di piastrelle", "https://images.unsplash.com/photo-1584622650111-993a426fbf0a?w=400"),
    ("elena_ceramica", "Mattonelle in cotto fatto a mano",
     "Mattonelle in cotto prodotte con argilla locale e cotte in forno a legna. Superficie naturale e "
     "irregolare, perfette per ambienti rustici.",
     28.00, "Fabbricazione di piastrelle", "https://images.unsplash.com/photo-1571055107494-8d1b38da69a6?w=400"),
]

GALLERY_CAPTIONS = ["Dettaglio della lavorazione", "In laboratorio", "Il prodotto finito"]

REVIEW_TEXTS = [
    "Lavoro eccezionale, qualità artigianale straordinaria!",
    "Prodotto bellissimo, consegna puntuale. Consigliatissimo!",
    "Artigiano molto professionale, risultato oltre le aspettative.",
    "Qualità premium, vale ogni centesimo speso.",
    "Attenzione ai dettagli incredibile, sono rimasto stupefatto.",
    "Tradizione italiana al suo meglio, prodotto magnifico.",
    "Servizio impeccabile dall'inizio alla fine.",
    "Artigianato di altissimo livello, lo rifarei sicuramente.",
]

RESET_SQL = """
TRUNCATE orders, reviews, service_gallery, services, users RESTART IDENTITY CASCADE;
"""

# Cached columns follow the reviews actually inserted
REFRESH_RATINGS_SQL = """
UPDATE services s SET
    rating = COALESCE(r.avg_rating, 0),
    reviews_count = COALESCE(r.review_count, 0)
FROM (
    SELECT sv.id AS service_id,
           ROUND(AVG(rv.rating)::numeric, 1) AS avg_rating,
           COUNT(rv.id) AS review_count
    FROM services sv
    LEFT JOIN reviews rv ON rv.service_id = sv.id
    GROUP BY sv.id
) r
WHERE s.id = r.service_id;
"""


def seed(conninfo: str = DATABASE_URL, rng: random.Random | None = None) -> None:
    """
    Wipe the marketplace tables and load the demo artisans, listings,
    galleries and reviews. Runs in a single transaction.
    """
    rng = rng or random.Random()
    password_hash = hash_password(DEMO_PASSWORD)

    with psycopg.connect(conninfo) as conn:
        with conn.cursor() as cur:
            cur.execute(RESET_SQL)

            # Step 1: users
            user_ids = {}
            for artisan in ARTISANS:
                cur.execute(
                    """
                    INSERT INTO users (email, username, password_hash, name, avatar, bio, location,
                                       phone, website, years_experience)
                    VALUES (%(email)s, %(username)s, %(password_hash)s, %(name)s, %(avatar)s, %(bio)s,
                            %(location)s, %(phone)s, %(website)s, %(years_experience)s)
                    RETURNING id
                    """,
                    {
                        **artisan,
                        "password_hash": password_hash,
                        "avatar": f"https://api.dicebear.com/7.x/avataaars/svg?seed={artisan['username']}",
                    },
                )
                user_ids[artisan["username"]] = cur.fetchone()[0]
            logger.info("Created %d artisans", len(user_ids))

            # Step 2: services + gallery
            service_ids = []
            for username, title, description, price, category, image in SERVICES:
                cur.execute(
                    """
                    INSERT INTO services (title, description, price, category, seller_id, image)
                    VALUES (%s, %s, %s, %s, %s, %s)
                    RETURNING id
                    """,
                    (title, description, price, category, user_ids[username], image),
                )
                service_id = cur.fetchone()[0]
                service_ids.append((service_id, user_ids[username]))

                for order, caption in enumerate(GALLERY_CAPTIONS):
                    cur.execute(
                        """
                        INSERT INTO service_gallery (service_id, image_url, caption, display_order)
                        VALUES (%s, %s, %s, %s)
                        """,
                        (service_id, f"{image}&sig={service_id}-{order}", caption, order),
                    )
            logger.info("Created %d services", len(service_ids))

            # Step 3: reviews, never by the seller of the reviewed service
            review_count = 0
            reviewers = list(user_ids.values())
            for service_id, seller_id in service_ids:
                candidates = [uid for uid in reviewers if uid != seller_id]
                for reviewer_id in rng.sample(candidates, rng.randint(1, 3)):
                    cur.execute(
                        "INSERT INTO reviews (user_id, service_id, rating, comment) VALUES (%s, %s, %s, %s)",
                        (reviewer_id, service_id, rng.randint(4, 5), rng.choice(REVIEW_TEXTS)),
                    )
                    review_count += 1
            logger.info("Created %d reviews", review_count)

            cur.execute(REFRESH_RATINGS_SQL)

        conn.commit()

    logger.info("Seeding complete. Test account: %s / %s", ARTISANS[0]["email"], DEMO_PASSWORD)


if __name__ == "__main__":
    from logging_config import setup_logging

    setup_logging()
    if init_database():
        seed()
