"""Allow running the forwarder as a module: python -m courier."""

from courier.runner import main

if __name__ == "__main__":
    main()
