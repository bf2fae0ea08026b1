#!/usr/bin/env python3
"""
Database initialization script for HWLink.

Creates the player/world variable tables and reports storage health.
"""
import os
import sys

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dotenv import load_dotenv

load_dotenv()

from hwlink.config import get_config
from hwlink.database import get_database_url, get_health_status, init_all


def main():
    """Initialize database and create all tables."""
    print("=" * 60)
    print("HWLink Database Initialization")
    print("=" * 60)

    try:
        config = get_config()
        db_url = get_database_url(config)
        print(f"\n📊 Database URL: {db_url.split('@')[1] if '@' in db_url else db_url}")

        print("\n🔨 Creating database tables...")
        init_all(config, create_tables=True)
        print("✅ All tables created successfully")

        print("\n🏥 Checking database health...")
        health = get_health_status()

        print("\n📊 Database Health:")
        print(f"  Database: {health['database']['status']}")
        print(f"  Redis: {health['redis']['status']}")

        if health["database"]["status"] != "healthy":
            print("\n⚠️  Database is not healthy. Check configuration.")
            return 1

        if health["redis"]["status"] != "healthy":
            print("\n⚠️  Redis unavailable: world variables will be read from the database on every load.")

        print("\n✅ Database initialization complete!")
        return 0

    except Exception as e:
        print(f"\n❌ Error initializing database: {e}")
        import traceback

        traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
