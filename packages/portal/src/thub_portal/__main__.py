from thub_portal.cli import main

main()
