import pandas as pd
import numpy as np
import datetime
import random
import os
import sys
from pydantic import ValidationError

# Add project root to path to import schemas
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
from src.common.schemas.reports import RawReport, CRAWL_TIME_FORMAT

# Simulation Configuration
NUM_COMMENTS = 2000   # Distinct reports posted by users
CRAWLS_PER_COMMENT = 4  # Times the same report is re-observed before it ages out
CRAWL_INTERVAL_MIN = 20
DAYS = 30

# road_id -> "major;minor". Pairs of ids are opposite directions of one stretch.
ROADS = {
    "1": "6th October Bridge;Tahrir To Mohandeseen",
    "2": "6th October Bridge;Mohandeseen To Tahrir",
    "3": "Ring Road;Maadi To Moneeb",
    "4": "Ring Road;Moneeb To Maadi",
    "5": "Corniche;Maadi To Downtown",
    "6": "Corniche;Downtown To Maadi",
    "7": "Salah Salem",
}

INFO_CODE = 10
SPEED_COMMENTS = [
    "[GPS] {speed} km/h",
    "Bey2ollak GPS: {speed}km/h",
    "السرعة {speed} كم/س",
    "{speed} كم/ساعة تقريبا",
]
PLAIN_COMMENTS = ["zahma gedan", "7alawa", "mashy", "el tare2 fady", "ezzay el tare2?"]

def speed_for(level: int) -> int:
    ranges = {1: (80, 110), 2: (40, 79), 3: (20, 39), 4: (10, 19), 5: (0, 9)}
    low, high = ranges[level]
    return random.randint(low, high)

def generate_data(num_comments=NUM_COMMENTS, output_file="data/raw/traffic_reports.csv"):
    print(f"Generating {num_comments} synthetic reports re-crawled {CRAWLS_PER_COMMENT} times...")

    data = []
    start_date = datetime.datetime(2016, 1, 1)
    rejected = 0

    for comment_id in range(1, num_comments + 1):
        # 1. Report time, biased to rush hours
        day = random.randint(0, DAYS - 1)
        if random.random() > 0.4:
            hour = random.choice([8, 9, 10, 15, 16, 17, 18])
            is_rush_hour = True
        else:
            hour = random.randint(0, 23)
            is_rush_hour = False
        report_time = start_date + datetime.timedelta(days=day, hours=hour, minutes=random.randint(0, 59))

        # 2. Road and congestion level
        road_id = random.choice(list(ROADS))
        if is_rush_hour:
            level = int(np.random.choice([3, 4, 5], p=[0.3, 0.4, 0.3]))
        else:
            level = int(np.random.choice([1, 2, 3], p=[0.5, 0.4, 0.1]))

        # 3. Report type: most are congestion, some questions/incidents,
        #    some lost their score to the info sentinel
        roll = random.random()
        if roll < 0.70:
            status, text = level, random.choice(PLAIN_COMMENTS)
        elif roll < 0.85:
            status = INFO_CODE
            text = random.choice(SPEED_COMMENTS).format(speed=speed_for(level))
        elif roll < 0.90:
            status, text = INFO_CODE, random.choice(PLAIN_COMMENTS)
        elif roll < 0.95:
            status, text = 6, "ezzay el tare2?"
        else:
            status, text = random.choice([7, 8, 9]), "7adsa"

        # 4. Every crawl re-reports the same comment with a growing age
        first_crawl = report_time + datetime.timedelta(seconds=random.randint(30, 600))
        for crawl in range(CRAWLS_PER_COMMENT):
            crawl_time = first_crawl + datetime.timedelta(minutes=crawl * CRAWL_INTERVAL_MIN)
            age = crawl_time - report_time
            age_minutes = int(round(age.total_seconds() / 60))
            record_dict = {
                "crawl_date": crawl_time.strftime(CRAWL_TIME_FORMAT),
                "road_id": road_id,
                "road_name": ROADS[road_id],
                "rd_rp_stid": status,
                "rd_stid": random.choice([1, 2, 3, 4, 5, INFO_CODE]),
                "rd_rp_hr": age_minutes // 60,
                "rd_rp_mn": age_minutes % 60,
                "rd_hr": 0,
                "rd_mn": random.randint(0, 30),
                "rd_rp_cmid": comment_id,
                "rd_rp_cm": text,
                "ad_url": "",
                "app_version": "2.1",
            }

            # A small share of crawls carry a broken timestamp
            if random.random() < 0.01:
                record_dict["crawl_date"] = crawl_time.isoformat()

            # Validate with Pydantic schema (column names mapped as in conf/pipeline/default.yaml)
            try:
                RawReport(
                    crawl_time=record_dict["crawl_date"],
                    road_id=record_dict["road_id"],
                    road_name_compound=record_dict["road_name"],
                    status_id=record_dict["rd_rp_stid"],
                    report_relative_hours=record_dict["rd_rp_hr"],
                    report_relative_minutes=record_dict["rd_rp_mn"],
                    comment_id=record_dict["rd_rp_cmid"],
                    comment_text=record_dict["rd_rp_cm"],
                )
            except ValidationError:
                rejected += 1
            data.append(record_dict)

    df = pd.DataFrame(data)
    print(df.head())
    print(f"{len(df)} rows, {rejected} with malformed crawl timestamps")

    # Ensure output directory exists
    os.makedirs(os.path.dirname(output_file), exist_ok=True)

    # Save
    df.to_csv(output_file, index=False)
    print(f"Dataset saved to {output_file}")

if __name__ == "__main__":
    generate_data()
