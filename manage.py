# manage.py
import os
import sys

from app import create_app
from src.database.db_manager import db


def create_db():
    """Creates the database tables."""
    app = create_app()
    with app.app_context():
        db_uri = app.config['SQLALCHEMY_DATABASE_URI']

        if db_uri.startswith('sqlite:///'):
            db_dir = os.path.dirname(db_uri[len('sqlite:///'):])
            if db_dir:
                os.makedirs(db_dir, exist_ok=True)
                print(f"Ensured directory exists: {db_dir}")

        db.create_all()
        print("Database tables created!")


COMMANDS = {'create_db': create_db}


def main(argv):
    if len(argv) < 2:
        print("No command provided. Usage: python manage.py create_db")
        return 1
    command = COMMANDS.get(argv[1])
    if command is None:
        print(f"Unknown command: {argv[1]}")
        print("Usage: python manage.py create_db")
        return 1
    command()
    return 0


if __name__ == '__main__':
    sys.exit(main(sys.argv))
