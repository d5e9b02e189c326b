#!/usr/bin/env python3
"""
Worker RQ avec logging JSON structuré.
Usage: python worker.py <queue_name>
"""
import sys
from rq import Worker, Queue
import redis

# Setup structured logging avant tout
from app.core.config import LOG_LEVEL, REDIS_URL, RECONCILE_QUEUE
from app.core.logging import setup_logging
setup_logging(level=LOG_LEVEL)

redis_conn = redis.from_url(REDIS_URL)


def main():
    queue_names = sys.argv[1:] if len(sys.argv) > 1 else [RECONCILE_QUEUE]

    queues = [Queue(name, connection=redis_conn) for name in queue_names]
    worker = Worker(queues, connection=redis_conn)
    worker.work()


if __name__ == "__main__":
    main()
