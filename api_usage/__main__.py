from api_usage.cli import main

raise SystemExit(main())
