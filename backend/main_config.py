import os
BASE_DIR = os.path.dirname(os.path.abspath(__file__))
DB_DIR = os.path.join(BASE_DIR, "db")
AGENT_DB_PATH = os.path.join(DB_DIR, "coding_agent.db")
LOG_DIR = os.path.join(BASE_DIR, "log")

PROMPTS_DIR = os.path.join(BASE_DIR, "prompts")
DEFAULT_SYSTEM_PROMPT_PATH = os.path.join(PROMPTS_DIR, "coding_agent_system_prompt.md")
