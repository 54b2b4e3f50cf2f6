from phonesim.balance.cli import main

raise SystemExit(main())
