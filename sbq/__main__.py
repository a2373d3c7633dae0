from sbq.app.main import main

main()
