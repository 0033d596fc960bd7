import argparse

from db import main

parser = argparse.ArgumentParser(description="Initialize the violation database.")
parser.add_argument("--reset", action="store_true", help="Drop existing tables first.")
args = parser.parse_args()
main(reset=args.reset)
