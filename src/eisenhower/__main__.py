from eisenhower.cli import main

main()
