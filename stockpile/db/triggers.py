# stockpile/db/triggers.py
"""
Storage-level invariants.

Two rules are enforced by the database rather than by application code:

* no two active (unreturned) rental items for the same barcode may belong to
  rentals with overlapping dates within an organization;
* archiving a user nulls its email and password in the same write.

The statements are attached to table creation so ``Base.metadata.create_all``
and the initial migration install identical triggers. PostgreSQL takes a
per-barcode advisory lock so concurrent rental inserts serialize.
"""
from sqlalchemy import DDL, event

from stockpile.db.errors import OVERLAP_MESSAGE
from stockpile.db.models.rental import RentalItem
from stockpile.db.models.user import User

SQLITE_RENTAL_ITEM_INSERT = f"""
CREATE TRIGGER rental_items_overlap_insert
BEFORE INSERT ON rental_items
FOR EACH ROW WHEN NEW.returned IS NULL
BEGIN
    SELECT RAISE(ABORT, '{OVERLAP_MESSAGE}')
    WHERE EXISTS (
        SELECT 1
        FROM rental_items AS other
        JOIN rentals AS r ON r.id = other.rental_id
        JOIN rentals AS this ON this.id = NEW.rental_id
        WHERE other.barcode = NEW.barcode
          AND other.returned IS NULL
          AND other.rental_id != NEW.rental_id
          AND r.organization_id = this.organization_id
          AND r.start_date <= this.end_date
          AND r.end_date >= this.start_date
    );
END
"""

SQLITE_RENTAL_ITEM_UPDATE = f"""
CREATE TRIGGER rental_items_overlap_update
BEFORE UPDATE OF rental_id, barcode, returned ON rental_items
FOR EACH ROW WHEN NEW.returned IS NULL
BEGIN
    SELECT RAISE(ABORT, '{OVERLAP_MESSAGE}')
    WHERE EXISTS (
        SELECT 1
        FROM rental_items AS other
        JOIN rentals AS r ON r.id = other.rental_id
        JOIN rentals AS this ON this.id = NEW.rental_id
        WHERE other.barcode = NEW.barcode
          AND other.returned IS NULL
          AND other.id != OLD.id
          AND r.organization_id = this.organization_id
          AND r.start_date <= this.end_date
          AND r.end_date >= this.start_date
    );
END
"""

SQLITE_RENTAL_DATES_UPDATE = f"""
CREATE TRIGGER rentals_overlap_update
BEFORE UPDATE OF start_date, end_date ON rentals
FOR EACH ROW
BEGIN
    SELECT RAISE(ABORT, '{OVERLAP_MESSAGE}')
    WHERE EXISTS (
        SELECT 1
        FROM rental_items AS mine
        JOIN rental_items AS other
          ON other.barcode = mine.barcode AND other.rental_id != mine.rental_id
        JOIN rentals AS r ON r.id = other.rental_id
        WHERE mine.rental_id = NEW.id
          AND mine.returned IS NULL
          AND other.returned IS NULL
          AND r.organization_id = NEW.organization_id
          AND r.start_date <= NEW.end_date
          AND r.end_date >= NEW.start_date
    );
END
"""

SQLITE_USER_ARCHIVE = """
CREATE TRIGGER users_archive
AFTER UPDATE OF archived ON users
FOR EACH ROW WHEN NEW.archived IS NOT NULL
BEGIN
    UPDATE users SET email = NULL, password = NULL WHERE id = NEW.id;
END
"""

POSTGRES_RENTAL_ITEM_FUNCTION = f"""
CREATE OR REPLACE FUNCTION rental_items_check_overlap() RETURNS trigger AS $$
DECLARE
    this_rental RECORD;
BEGIN
    IF NEW.returned IS NOT NULL THEN
        RETURN NEW;
    END IF;

    PERFORM pg_advisory_xact_lock(hashtext(NEW.barcode));
    SELECT * INTO this_rental FROM rentals WHERE id = NEW.rental_id;

    IF EXISTS (
        SELECT 1
        FROM rental_items AS other
        JOIN rentals AS r ON r.id = other.rental_id
        WHERE other.barcode = NEW.barcode
          AND other.returned IS NULL
          AND other.id IS DISTINCT FROM NEW.id
          AND r.organization_id = this_rental.organization_id
          AND r.start_date <= this_rental.end_date
          AND r.end_date >= this_rental.start_date
    ) THEN
        RAISE EXCEPTION '{OVERLAP_MESSAGE}' USING ERRCODE = 'exclusion_violation';
    END IF;
    RETURN NEW;
END;
$$ LANGUAGE plpgsql
"""

POSTGRES_RENTAL_ITEM_TRIGGER = """
CREATE TRIGGER rental_items_overlap
BEFORE INSERT OR UPDATE OF rental_id, barcode, returned ON rental_items
FOR EACH ROW EXECUTE FUNCTION rental_items_check_overlap()
"""

POSTGRES_RENTAL_DATES_FUNCTION = f"""
CREATE OR REPLACE FUNCTION rentals_check_overlap() RETURNS trigger AS $$
DECLARE
    active_barcode TEXT;
BEGIN
    FOR active_barcode IN
        SELECT barcode FROM rental_items
        WHERE rental_id = NEW.id AND returned IS NULL
        ORDER BY barcode
    LOOP
        PERFORM pg_advisory_xact_lock(hashtext(active_barcode));
        IF EXISTS (
            SELECT 1
            FROM rental_items AS other
            JOIN rentals AS r ON r.id = other.rental_id
            WHERE other.barcode = active_barcode
              AND other.returned IS NULL
              AND other.rental_id != NEW.id
              AND r.organization_id = NEW.organization_id
              AND r.start_date <= NEW.end_date
              AND r.end_date >= NEW.start_date
        ) THEN
            RAISE EXCEPTION '{OVERLAP_MESSAGE}' USING ERRCODE = 'exclusion_violation';
        END IF;
    END LOOP;
    RETURN NEW;
END;
$$ LANGUAGE plpgsql
"""

POSTGRES_RENTAL_DATES_TRIGGER = """
CREATE TRIGGER rentals_overlap
BEFORE UPDATE OF start_date, end_date ON rentals
FOR EACH ROW EXECUTE FUNCTION rentals_check_overlap()
"""

POSTGRES_USER_ARCHIVE_FUNCTION = """
CREATE OR REPLACE FUNCTION users_archive() RETURNS trigger AS $$
BEGIN
    IF NEW.archived IS NOT NULL THEN
        NEW.email := NULL;
        NEW.password := NULL;
    END IF;
    RETURN NEW;
END;
$$ LANGUAGE plpgsql
"""

POSTGRES_USER_ARCHIVE_TRIGGER = """
CREATE TRIGGER users_archive
BEFORE UPDATE OF archived ON users
FOR EACH ROW EXECUTE FUNCTION users_archive()
"""

# Statements per dialect, keyed by the table whose creation installs them.
# ``rentals`` triggers reference ``rental_items`` and are installed with it.
TRIGGERS = {
    "sqlite": {
        "rental_items": [SQLITE_RENTAL_ITEM_INSERT, SQLITE_RENTAL_ITEM_UPDATE, SQLITE_RENTAL_DATES_UPDATE],
        "users": [SQLITE_USER_ARCHIVE],
    },
    "postgresql": {
        "rental_items": [
            POSTGRES_RENTAL_ITEM_FUNCTION,
            POSTGRES_RENTAL_ITEM_TRIGGER,
            POSTGRES_RENTAL_DATES_FUNCTION,
            POSTGRES_RENTAL_DATES_TRIGGER,
        ],
        "users": [POSTGRES_USER_ARCHIVE_FUNCTION, POSTGRES_USER_ARCHIVE_TRIGGER],
    },
}

TABLES = {
    "rental_items": RentalItem.__table__,
    "users": User.__table__,
}

for dialect, statements_by_table in TRIGGERS.items():
    for table_name, statements in statements_by_table.items():
        for statement in statements:
            event.listen(
                TABLES[table_name],
                "after_create",
                DDL(statement).execute_if(dialect=dialect),
            )
