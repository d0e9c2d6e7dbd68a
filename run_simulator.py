#!/usr/bin/env python3
"""Runner script to start the registration simulator."""
import os
import subprocess
import sys

script_dir = os.path.dirname(os.path.abspath(__file__))
simulator_dir = os.path.join(script_dir, "simulator")

os.environ.setdefault("BACKEND_URL", "http://localhost:8000")

subprocess.run([
    sys.executable, os.path.join(simulator_dir, "simulate.py"),
    "--count", "20",
    "--interval", "2",
])
