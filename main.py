"""
Convenience entrypoint for the chat client.

Allows running `python main.py` in addition to the `chat-companion` script.
"""

from chat_companion.cli import main


if __name__ == "__main__":
    main()
