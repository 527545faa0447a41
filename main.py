"""
bandstat - Main Entry Point

Example usage:
    python main.py path/to/mix.wav
    python main.py --config config/config.yaml mix.wav reference.wav
"""

from bandstat.cli import main


if __name__ == "__main__":
    main()
