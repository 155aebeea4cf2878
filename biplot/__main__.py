from biplot.run import main

main()
