"""Allow running a coach or student process as a module: python -m colearner."""

from colearner.runner import main

if __name__ == "__main__":
    main()
