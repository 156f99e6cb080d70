from credvault.cli import main

main()
