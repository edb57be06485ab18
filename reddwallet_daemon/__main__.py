"""Allow `python -m reddwallet_daemon`"""

from .main import main

main()
