import logging
import time

import redis
from django.core.management.base import BaseCommand

from celery_app import app as celery_app
from tasks.config import TASK_CONFIG

logger = logging.getLogger('tasks')

FEE_TASK_PREFIX = 'finance.'


class Command(BaseCommand):
    help = 'Monitor the fee summary refresh queue'

    def add_arguments(self, parser):
        parser.add_argument(
            '--interval',
            type=int,
            default=5,
            help='Monitoring interval in seconds'
        )
        parser.add_argument(
            '--once',
            action='store_true',
            help='Run once and exit'
        )

    def handle(self, *args, **options):
        interval = options['interval']

        if not TASK_CONFIG['USE_CELERY']:
            self.stdout.write("ℹ️ Fee refreshes run inline on this host; nothing to monitor")
            return

        self.stdout.write("🚀 Starting fee task monitor")
        self.stdout.write(f"   Interval: {interval} seconds")
        self.stdout.write(f"   Broker: {TASK_CONFIG['BROKER_URL']}")
        self.stdout.write("-" * 50)

        try:
            client = redis.from_url(TASK_CONFIG['BROKER_URL'])
            while True:
                self.stdout.write(self.queue_status(client))
                if options['once']:
                    break
                time.sleep(interval)
        except KeyboardInterrupt:
            self.stdout.write("\n👋 Monitor stopped by user")
        except redis.RedisError as e:
            logger.error(f"Fee task monitor lost the broker: {e}")
            self.stdout.write(f"\n❌ Error: {e}")

    def queue_status(self, client):
        waiting = client.llen('celery')
        active = celery_app.control.inspect(timeout=1).active() or {}
        running = [
            task['name'] for tasks in active.values() for task in tasks
            if task.get('name', '').startswith(FEE_TASK_PREFIX)
        ]

        parts = [f"📊 Queue: {waiting} waiting" if waiting else "📊 Queue: Empty"]
        if running:
            parts.append(f"⚡ Refreshing: {', '.join(sorted(set(running)))}")
        else:
            parts.append("⚡ No fee refresh running")
        return ' | '.join(parts)
