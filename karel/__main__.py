from karel.cli import main

main()
