import sys

from med_reminder.cli import main

sys.exit(main())
