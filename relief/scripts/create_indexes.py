#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Script to create the MongoDB unique and query indexes.

Run once per deployment before serving traffic: the one-active-claim rule
depends on the partial unique index on claims.
"""

import sys
import logging

from relief.config import ReliefSettings
from relief.services.mongodb import MongoDBService

logger = logging.getLogger(__name__)


def main(settings: ReliefSettings = None) -> int:
    """Create MongoDB indexes; returns the process exit code."""
    settings = settings or ReliefSettings.from_env()
    mongodb_service = MongoDBService(settings.mongodb_uri, settings.mongodb_database)
    try:
        logger.info("Starting MongoDB index creation...")

        health = mongodb_service.health_check()
        if health['status'] != 'healthy':
            logger.error(f"MongoDB is not healthy: {health}")
            return 1

        logger.info(f"Connected to MongoDB {health['version']} - Database: {health['database']}")

        mongodb_service.create_indexes()

        logger.info("MongoDB indexes created successfully!")
        return 0

    except Exception as e:
        logger.error(f"Failed to create indexes: {e}")
        return 1
    finally:
        mongodb_service.close_connection()


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    sys.exit(main())
