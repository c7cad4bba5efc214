import random
from collections.abc import Iterator

from sqllog_report.domain import LogRecord

DEMO_DATABASES = ("billing", "inventory", "users")

DEMO_QUERIES = (
    "SELECT * FROM orders WHERE customer_id = {id}",
    "SELECT id, name FROM users WHERE id = {id}",
    "UPDATE inventory SET qty = qty - 1 WHERE sku = 'SKU-{id}'",
    "SELECT count(*) FROM events WHERE created_at > '2024-01-0{day}'",
    "INSERT INTO audit_log (user_id, action) VALUES ({id}, 'login')",
    "SELECT * FROM invoices WHERE amount > {id}.50 ORDER BY created_at DESC",
)


def demo_records(count: int = 200, seed: int = 7) -> Iterator[LogRecord]:
    """Deterministic sample records covering fast, slow and hot queries."""
    rng = random.Random(seed)
    for _ in range(count):
        template = rng.choice(DEMO_QUERIES)
        # roughly one in ten is slow, one in five is hot
        exec_time = rng.randint(1000, 5000) if rng.random() < 0.1 else rng.randint(1, 800)
        exec_count = rng.randint(100, 2000) if rng.random() < 0.2 else rng.randint(1, 99)
        yield LogRecord(
            database_name=rng.choice(DEMO_DATABASES),
            sql_text=template.format(id=rng.randint(1, 9999), day=rng.randint(1, 9)),
            exec_time_ms=exec_time,
            exec_count=exec_count,
        )
