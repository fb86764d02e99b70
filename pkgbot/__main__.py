from pkgbot.main import main

main()
