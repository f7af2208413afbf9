"""Discord bot integration for Voice Roulette.

The bot runs in-process with FastAPI, sharing the same event loop and the
same session token store. It hands out roulette links via /roulette and
serves as the roster source for the HTTP API.

Optional: if DISCORD_BOT_TOKEN is not set, the app runs without Discord.
"""
