from ratebook import Currency, RateRecord, Ratebook

print(Ratebook.__version__)  # 0.1.0

# Default usage keeps everything in memory
book = Ratebook()

consulting = book.create(RateRecord(title="Consulting", amount=120.0), "alice")
print(consulting.id, consulting.currency)  # <uuid> Currency.CHF

book.update(
    consulting.id,
    RateRecord(
        title="Consulting Senior",
        amount=150.0,
        created_at=consulting.created_at,
        created_by=consulting.created_by,
    ),
    "bob",
)
print(book.read(consulting.id))

# First page of rates, sorted by title
print(book.list(position=0, size=10))

# Checkpoint every change into a JSON file
durable = Ratebook("file:///tmp/ratebook/rates.json")
durable.create(RateRecord(title="Support", amount=80.0, currency=Currency.EUR), "alice")

# Copy the in-memory rates into SQLite
book.migrate("sqlite:////tmp/ratebook/rates.db")
