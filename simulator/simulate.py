#!/usr/bin/env python3
"""
Simulator that fills a running meetup site with fake registrations.

Generates registrations with:
- name: random first and last name
- email: derived from the name
- is_speaker: true with a configurable probability
- topic / profile_pic: filled in for speakers only

Handy for watching the live attendee list and speaker showcase update.
"""

import argparse
import os
import random
import sys
import time
from typing import Any, Dict, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

FIRST_NAMES = ["Ana", "Bo", "Cy", "Dana", "Eli", "Fran", "Gus", "Hana", "Ivo", "Jo", "Kai", "Lea"]
LAST_NAMES = ["Smith", "Nguyen", "Garcia", "Okafor", "Kowalski", "Tanaka", "Silva", "Berg"]
TOPICS = [
    "Writing a parser by hand",
    "What I learned debugging a memory leak",
    "SQLite in production",
    "Property-based testing in practice",
    "Building a tiny compiler",
    "Profiling without guessing",
    "Reading other people's code",
]


def create_registration(rng: random.Random, speaker_ratio: float) -> Dict[str, Any]:
    """Create one fake registration payload."""
    first = rng.choice(FIRST_NAMES)
    last = rng.choice(LAST_NAMES)
    payload: Dict[str, Any] = {
        "name": f"{first} {last}",
        "email": f"{first.lower()}.{last.lower()}{rng.randint(1, 999)}@example.com",
    }

    if rng.random() < speaker_ratio:
        payload["is_speaker"] = True
        payload["topic"] = rng.choice(TOPICS)
        payload["profile_pic"] = f"https://i.pravatar.cc/150?u={payload['email']}"

    return payload


def create_session_with_retry() -> requests.Session:
    """Create a requests session with retry logic."""
    session = requests.Session()

    retry_strategy = Retry(
        total=5,
        backoff_factor=1,  # exponential backoff: 1, 2, 4, 8, 16 seconds
        status_forcelist=[502, 503, 504],
    )

    adapter = HTTPAdapter(max_retries=retry_strategy)
    session.mount("http://", adapter)
    session.mount("https://", adapter)

    return session


def send_registration(
    session: requests.Session,
    backend_url: str,
    registration: Dict[str, Any],
) -> Optional[Dict[str, Any]]:
    """Submit a registration; returns the JSON body or None on failure."""
    url = f"{backend_url}/submit-registration"

    try:
        response = session.post(url, json=registration, timeout=10)
        response.raise_for_status()
        return response.json()
    except requests.exceptions.RequestException as e:
        print(f"[ERROR] Failed to submit registration: {e}")
        return None


def wait_for_backend(backend_url: str, max_retries: int = 30, delay: float = 2.0) -> bool:
    """Wait for backend to be available."""
    print(f"Waiting for backend at {backend_url}...")

    for attempt in range(max_retries):
        try:
            response = requests.get(f"{backend_url}/health", timeout=5)
            if response.status_code == 200:
                print("Backend is ready!")
                return True
        except requests.exceptions.RequestException:
            pass

        print(f"  Attempt {attempt + 1}/{max_retries} - Backend not ready, waiting...")
        time.sleep(delay)

    print("Backend did not become available in time.")
    return False


def run_simulation(
    backend_url: str,
    count: int,
    interval: float,
    speaker_ratio: float,
    seed: Optional[int] = None,
) -> int:
    """Submit ``count`` registrations, ``interval`` seconds apart. Returns how many succeeded."""
    print(f"\n{'='*60}")
    print("Meetup Registration Simulator")
    print(f"{'='*60}")
    print(f"Backend URL: {backend_url}")
    print(f"Registrations: {count}")
    print(f"Interval: {interval}s")
    print(f"Speaker ratio: {speaker_ratio:.0%}")
    print(f"{'='*60}\n")

    rng = random.Random(seed)
    session = create_session_with_retry()
    sent = 0
    speakers = 0

    for index in range(count):
        registration = create_registration(rng, speaker_ratio)
        label = "speaker" if registration.get("is_speaker") else "attendee"
        print(f"[{index + 1:3d}/{count}] {registration['name']} ({label})")

        if send_registration(session, backend_url, registration):
            sent += 1
            if registration.get("is_speaker"):
                speakers += 1

        if index < count - 1:
            time.sleep(interval)

    print()
    print(f"{'='*60}")
    print("Simulation Complete!")
    print(f"{'='*60}")
    print(f"Submitted: {sent}/{count}")
    print(f"  - Speakers: {speakers}")
    print(f"{'='*60}")
    return sent


def main():
    parser = argparse.ArgumentParser(
        description="Meetup registration simulator"
    )
    parser.add_argument(
        "--count",
        type=int,
        default=10,
        help="Number of registrations to submit (default: 10)",
    )
    parser.add_argument(
        "--interval",
        type=float,
        default=3.0,
        help="Seconds between submissions (default: 3)",
    )
    parser.add_argument(
        "--speaker-ratio",
        type=float,
        default=0.25,
        help="Probability that a registration is a speaker (default: 0.25)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed for reproducible runs",
    )

    args = parser.parse_args()

    backend_url = os.environ.get("BACKEND_URL", "http://localhost:8000").rstrip("/")

    if not wait_for_backend(backend_url):
        sys.exit(1)

    try:
        run_simulation(
            backend_url=backend_url,
            count=args.count,
            interval=args.interval,
            speaker_ratio=args.speaker_ratio,
            seed=args.seed,
        )
    except KeyboardInterrupt:
        print("\nSimulation interrupted by user.")
        sys.exit(0)


if __name__ == "__main__":
    main()
