import os

from dotenv import load_dotenv

from config_loader import PATH_ENV_VARS


def load_env_variables(env_path=".env"):
    """
    Load a .env file into the environment and return the directory overrides
    it defines (None where unset). Variables already set in the environment win.
    """
    load_dotenv(dotenv_path=env_path, override=False)
    return {key: os.getenv(var) for key, var in PATH_ENV_VARS.items()}


# Sample .env file (to place in the working directory)
# MIRNAKIN_RESULTS_DIR=results
# MIRNAKIN_CACHE_DIR=results/cache
# MIRNAKIN_LOG_DIR=results/logs
