# app/scripts/create_admin.py
import argparse
import getpass
import logging
import os
from app.db.session import SessionLocal
from app.crud.crud_user import create_admin_user, get_user_by_email, promote_to_admin

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def main():
    parser = argparse.ArgumentParser(description="Crea el usuario administrador del CMS")
    parser.add_argument("--email", default=os.environ.get("ADMIN_EMAIL"))
    parser.add_argument("--name", default=os.environ.get("ADMIN_NAME", "Administrator"))
    args = parser.parse_args()

    if not args.email:
        parser.error("--email o ADMIN_EMAIL es obligatorio")
    password = os.environ.get("ADMIN_PASSWORD") or getpass.getpass("Contraseña del administrador: ")

    logger.info("Iniciando creación de usuario administrador...")
    db = SessionLocal()
    try:
        user = get_user_by_email(db, email=args.email)
        if not user:
            create_admin_user(db, email=args.email, full_name=args.name, password=password)
            logger.info(f"Usuario administrador '{args.email}' creado exitosamente.")
        elif not user.is_admin:
            promote_to_admin(db, user)
            logger.info(f"Usuario '{args.email}' promovido a administrador.")
        else:
            logger.info(f"El usuario administrador '{args.email}' ya existe.")
    finally:
        db.close()


if __name__ == "__main__":
    main()
