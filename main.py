import argparse
import time
import schedule
import logging
import sys
from config.app_config import METRICS_REFRESH_HOURS
from database.config import SessionLocal
from services.metrics_service import recalculate_all

# Configure Logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout),
        logging.FileHandler("leaders_worker.log")
    ]
)

def run_metrics_cycle():
    logging.info("Starting Creator Metrics Cycle...")
    db = SessionLocal()
    try:
        count = recalculate_all(db)
        logging.info(f"Cycle Complete. Metrics refreshed for {count} creators.")
    except Exception as e:
        logging.error(f"Error in metrics cycle: {e}")
        db.rollback()
    finally:
        db.close()

def start_scheduler():
    logging.info(f"Starting LEADERS Worker (metrics every {METRICS_REFRESH_HOURS}h)...")
    # Run once immediately
    run_metrics_cycle()

    schedule.every(METRICS_REFRESH_HOURS).hours.do(run_metrics_cycle)

    while True:
        schedule.run_pending()
        time.sleep(60)

def main():
    parser = argparse.ArgumentParser(description="LEADERS Background Worker")
    parser.add_argument("--mode", choices=["once", "schedule"], default="schedule", help="Run once or schedule")
    args = parser.parse_args()

    if args.mode == "schedule":
        start_scheduler()
    else:
        run_metrics_cycle()

if __name__ == "__main__":
    main()
