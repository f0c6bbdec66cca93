"""Keep test runs from writing rotating log files next to the sources."""
import os

os.environ.setdefault('SDM_LOG_TO_FILE', 'false')
os.environ.setdefault('SDM_LOG_FORMAT', 'text')
