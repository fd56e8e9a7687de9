"""Allow ``python -m kubeforge``."""

from kubeforge.main import main

if __name__ == "__main__":
    main()
