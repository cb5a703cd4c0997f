from tasktracker.database import create_tables, engine, get_session
from tasktracker.seed import seed_tasks

# Create tables if not exist
create_tables(engine)

with get_session() as session:
    added = seed_tasks(session)

if added:
    print(f"Added {added} sample tasks")
else:
    print("Tasks already exist, nothing to seed")
