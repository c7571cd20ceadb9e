from machinpi.cli import main

raise SystemExit(main())
