import sys
from tabulate import tabulate
from app import create_app
from database.models import BallRecord, Group, Match, SuperOver, Team, Tournament

# Map friendly names to Models
MODELS = {
    "1": ("Tournaments", Tournament),
    "2": ("Groups", Group),
    "3": ("Teams", Team),
    "4": ("Matches", Match),
    "5": ("Ball Log", BallRecord),
    "6": ("Super Overs", SuperOver),
}


def table_rows(model_class):
    """Return (headers, rows) for every record of a model."""
    columns = [c.name for c in model_class.__table__.columns]
    rows = []
    for record in model_class.query.all():
        row = []
        for c in columns:
            val = getattr(record, c)
            # Truncate long strings for display
            if isinstance(val, str) and len(val) > 50:
                val = val[:47] + "..."
            row.append(val)
        rows.append(row)
    return columns, rows


def view_table(model_name, model_class):
    print(f"\n--- {model_name} ---\n")
    columns, rows = table_rows(model_class)
    if not rows:
        print("No records found.")
        return
    print(tabulate(rows, headers=columns, tablefmt="grid"))
    print(f"\nTotal: {len(rows)} records")


def main():
    app = create_app()
    with app.app_context():
        if len(sys.argv) > 1:
            for choice in sys.argv[1:]:
                if choice in MODELS:
                    view_table(*MODELS[choice])
            return

        while True:
            print("\n" + "="*40)
            print(" CRICKET ADMIN DATABASE VIEWER")
            print("="*40)
            for key, (name, _) in MODELS.items():
                print(f"{key}. {name}")
            print("q. Quit")

            choice = input(f"\nSelect a table to view (1-{len(MODELS)}): ").strip().lower()

            if choice == 'q':
                break

            if choice in MODELS:
                name, model = MODELS[choice]
                view_table(name, model)
            else:
                print("Invalid selection.")

if __name__ == "__main__":
    main()
