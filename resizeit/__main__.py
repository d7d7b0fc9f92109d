from resizeit.app import main

main()
