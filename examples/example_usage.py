"""Example: use the service layer without Flask.

Controllers stay thin; the use cases live in the services wired by the container.
"""

import importlib

from dotenv import load_dotenv

from tally_check.config import get_settings_module
from tally_check.container import build_container
from tally_check.core.enums import Role


def main():
    load_dotenv()
    settings = importlib.import_module(get_settings_module())
    container = build_container(supabase_config=settings.SUPABASE_CONFIG)

    stats = container.dashboard_service.get_stats(Role.ADMIN)
    print(stats.to_dict())
    for course in container.course_service.list_all()[:5]:
        print(course.code, course.name, course.instructor_name or "-")


if __name__ == "__main__":
    main()
