from fx_mirror.service import main

main()
