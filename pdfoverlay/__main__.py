from pdfoverlay.main import main

main()
