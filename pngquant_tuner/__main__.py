import sys

from pngquant_tuner.main import run

if __name__ == "__main__":
    sys.exit(run())
