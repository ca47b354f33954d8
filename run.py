import argparse
import asyncio
import sys

from dotenv import load_dotenv

load_dotenv()



async def _create_admin(email: str, password: str, name: str, reset: bool = False) -> None:
    from src.backend.crud.users import DuplicateEmailError, create_admin, get_admin_by_email, set_admin_password
    from src.backend.utils.database import AsyncSessionLocal, init_models

    await init_models()
    async with AsyncSessionLocal() as db:
        try:
            user = await create_admin(db, email=email, password=password, display_name=name)
        except DuplicateEmailError:
            if not reset:
                print(f"Admin {email} already exists (use --reset to change the password)", file=sys.stderr)
                raise SystemExit(1)
            user = await set_admin_password(db, await get_admin_by_email(db, email), password)
            print(f"Password reset: {user.email}")
            return
    print(f"Admin created: {user.email}")


async def _seed(config_path: str) -> None:
    import src.backend.triggers  # noqa: F401
    from src.backend.crud.seed import load_config, seed_from_config
    from src.backend.utils.database import AsyncSessionLocal, init_models
    from src.backend.utils.triggers import triggers

    await init_models()
    config = load_config(config_path)
    async with AsyncSessionLocal() as db:
        written = await seed_from_config(db, config)
    await triggers.drain(timeout=30)
    print(f"Seeded {len(written)} documents from {config_path}")


def main():
    parser = argparse.ArgumentParser(description="Monopoly admin center")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="run the web app")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    serve.add_argument("--reload", action="store_true")

    admin = sub.add_parser("create-admin", help="create an admin login")
    admin.add_argument("--email", required=True)
    admin.add_argument("--password", required=True)
    admin.add_argument("--name", default="")
    admin.add_argument("--reset", action="store_true", help="reset the password if the admin exists")

    seed = sub.add_parser("seed", help="load the starter organization and businesses")
    seed.add_argument("--config", default="assets/config.json")

    args = parser.parse_args()
    if args.command == "serve":
        import uvicorn

        uvicorn.run("src.backend.app:app", host=args.host, port=args.port, reload=args.reload)
    elif args.command == "create-admin":
        asyncio.run(_create_admin(args.email, args.password, args.name, args.reset))
    elif args.command == "seed":
        asyncio.run(_seed(args.config))


if __name__ == '__main__':
    main()
