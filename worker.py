from dotenv import load_dotenv
load_dotenv()

from rq import Worker

from database.redis_client import get_redis
from services.tasks import SWEEP_INTERVAL_SECONDS, SWEEP_QUEUE, seed_sweep

if __name__ == '__main__':
    redis_conn = get_redis()

    # Only one self-rescheduling sweep chain per queue, however many workers start
    if seed_sweep():
        print(f"⏱️  Deadline sweep queued (every {SWEEP_INTERVAL_SECONDS}s)")
    else:
        print("⏱️  Deadline sweep already scheduled")

    worker = Worker([SWEEP_QUEUE], connection=redis_conn)
    print(f"🛠️  Redis Background Worker is listening on '{SWEEP_QUEUE}'...")
    worker.work(with_scheduler=True)
