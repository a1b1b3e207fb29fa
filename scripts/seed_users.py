import os
import sys

# Ensure project root is on sys.path when running from scripts/
BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if BASE_DIR not in sys.path:
    sys.path.insert(0, BASE_DIR)

from school_app import create_app
from school_app.seed import DEMO_ADMIN, DEMO_STUDENT, seed_defaults
from school_app.storage import get_storage


def main():
    app = create_app()
    with app.app_context():
        summary = seed_defaults(get_storage())

        print(
            f"Admin -> username: {DEMO_ADMIN['username']}, password: {DEMO_ADMIN['password']}, "
            f"created={summary['admin_created']}"
        )
        print(
            f"Student -> username: {DEMO_STUDENT['username']}, password: {DEMO_STUDENT['password']}, "
            f"created={summary['student_created']}"
        )
        print(
            f"Content -> settings={summary['settings']}, notices={summary['notices']}, "
            f"gallery={summary['gallery']}, achievements={summary['achievements']}, "
            f"fees={summary.get('fees', 0)}, academic_records={summary.get('academic_records', 0)}"
        )


if __name__ == "__main__":
    main()
