# scripts/create_super_admin.py
"""Create (or reset) the platform super-admin

Usage: python scripts/create_super_admin.py [username] [password]
"""
import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from app.db.database import async_session_local, close_db, init_db
from app.services.platform import PlatformService


async def create_super_admin(username: str, password: str):
    await init_db()
    async with async_session_local() as session:
        admin = await PlatformService(session).ensure_super_admin(username, password)
    await close_db()

    print(f"Super admin ready: {admin.username}")
    print("Login at /super-admin/login")


if __name__ == "__main__":
    username = sys.argv[1] if len(sys.argv) > 1 else "superadmin"
    password = sys.argv[2] if len(sys.argv) > 2 else "changeme123"
    asyncio.run(create_super_admin(username, password))
