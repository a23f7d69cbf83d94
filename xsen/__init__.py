"""XSEN Orchestrator: Boomer Bot, a chat assistant for Oklahoma Sooners fans.

Architecture Overview
=====================

One HTTP endpoint takes a fan's message and returns one text reply.  The
orchestrator decides which capability answers:

1. **Trivia**: random multiple-choice questions from a local JSON bank.
   The pending question lives on the session until the fan answers A-D.
2. **Video**: highlight clips from the video search service.
3. **Live stats**: scores, schedules and rosters from a tool endpoint.
4. **History**: football records and head-to-head series from a second
   tool endpoint.
5. **Generic chat**: a Claude model when an API key is configured,
   otherwise a static prompt listing what the bot can do.

Routing: keyword rules by default; with ``ROUTING_MODE=model`` a LangGraph
tool loop lets Claude pick the capability (capped at five rounds).

Key Design Decisions
--------------------
- **Every provider is optional**: a missing URL turns that capability off
  and the bot says so instead of failing.
- **Schema-agnostic tool calls**: the stats endpoints are called with an
  ordered list of argument shapes until one returns real data.
- **Sessions**: in-memory, swept by a daemon thread after 15 idle minutes.
- **Failures never surface as HTTP errors**: the chat route always answers
  200 with a friendly reply.

Package Structure
-----------------
- ``xsen/agent.py``: Orchestrator and LangGraph tool loop
- ``xsen/classifier.py``: Ordered keyword rules
- ``xsen/composer.py``: Canned replies and formatting
- ``xsen/config.py``: Centralized configuration from environment variables
- ``xsen/prompts.py``: System prompts
- ``xsen/server.py``: FastAPI application
- ``xsen/main.py``: CLI chat interface
- ``xsen/services/``: Sessions, trivia, teams, provider clients, metrics
- ``xsen/tools/``: Capability calls and their LangChain tool wrappers
- ``xsen/api/``: FastAPI routes and Pydantic schemas
"""
